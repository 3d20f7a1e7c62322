from __future__ import annotations

from typing import Optional, Sequence


class MonoplanError(Exception):
    """Base class of all planning and execution errors."""


class UnknownTaskError(MonoplanError, LookupError):
    """
    A referenced task (or a batch-expanded name) is missing from a target
    package. Aborts the whole plan.
    """

    def __init__(self, target: str, task: str, message: Optional[str] = None) -> None:
        self.target = target
        self.task = task
        super().__init__(message or f"Unknown task '{task}' in package '{target}'")


class TargetReuseError(MonoplanError):
    """
    An annex prerequisite borrowed its targets from a task that resolved to
    nothing.
    """

    def __init__(self, dependent: str, task: str, selectors: Sequence[str]) -> None:
        self.dependent = dependent
        self.task = task
        self.selectors = tuple(selectors)
        where = ",".join(self.selectors) or "."
        super().__init__(
            f"Annex prerequisite '{task}' of '{dependent}' "
            f"contributed no tasks from targets '{where}'"
        )


class WorkspaceError(MonoplanError, ValueError):
    """Invalid workspace configuration."""


class AbortedExecution(MonoplanError):
    """Process killed by a signal or terminated with a code above 127."""

    def __init__(self, signal: Optional[int] = None, code: Optional[int] = None) -> None:
        self.signal = signal
        self.code = code
        reason = f"signal {signal}" if signal is not None else f"exit code {code}"
        super().__init__(f"Execution aborted ({reason})")


class FailedExecution(MonoplanError):
    """Process exited with a non-zero code."""

    def __init__(self, code: int) -> None:
        self.code = code
        super().__init__(f"Execution failed with exit code {code}")
