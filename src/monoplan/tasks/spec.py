from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Union


@dataclass(frozen=True)
class Pre:
    """
    One prerequisite of a task.

    parallel: may run in parallel with the preceding prerequisite
    annex:    only borrows the referenced task's target selection;
              takes no part in sequential ordering
    """

    task: str
    targets: Tuple[str, ...] = ()
    parallel: bool = False
    annex: bool = False
    attrs: Dict[str, List[str]] = field(default_factory=dict, hash=False)
    args: Tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CommandAction:
    command: str  # shell text, run as written
    args: Tuple[str, ...] = ()
    parallel: bool = False  # may run in parallel with its own prerequisites

    type = "command"


@dataclass(frozen=True)
class ScriptAction:
    script: str

    type = "script"


@dataclass(frozen=True)
class GroupAction:
    targets: Tuple[str, ...] = ()  # member package selectors

    type = "group"


Action = Union[CommandAction, ScriptAction, GroupAction]


@dataclass(frozen=True)
class TaskSpec:
    pre: Tuple[Pre, ...] = ()
    attrs: Dict[str, List[str]] = field(default_factory=dict, hash=False)
    args: Tuple[str, ...] = ()
    action: Action = field(default_factory=GroupAction)
