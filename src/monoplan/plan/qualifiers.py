from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class TaskRef:
    """Identity of a task: owning package name and task name."""

    target: str
    name: str

    def __str__(self) -> str:
        return f"{self.target}:{self.name}"


@dataclass(frozen=True)
class SyntheticGroup:
    """
    Qualifier standing for "all of these resolved tasks".

    Only `id` takes part in comparison; `label` is for reports.
    """

    id: int
    label: str = field(default="", compare=False)

    def __str__(self) -> str:
        return f"#{self.id} {self.label}".rstrip()


Qualifier = Union[TaskRef, SyntheticGroup]
