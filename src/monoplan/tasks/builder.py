from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Optional, Type, Union

from monoplan.tasks.group import GroupTask
from monoplan.tasks.spec import Action, CommandAction, GroupAction, Pre, ScriptAction, TaskSpec
from monoplan.tasks.task import CommandTask, ScriptTask, Task

if TYPE_CHECKING:
    from monoplan.batches import Batcher
    from monoplan.packages import Package


TASK_TYPES: Dict[type, Type[Task]] = {
    CommandAction: CommandTask,
    ScriptAction: ScriptTask,
    GroupAction: GroupTask,
}


class TaskBuilder:
    """
    Collects task data incrementally and builds the immutable task.

    The action defaults to a group without members.
    """

    def __init__(self, target: "Package", name: str) -> None:
        self.target = target
        self.name = name
        self._pre: List[Pre] = []
        self._attrs: Dict[str, List[str]] = {}
        self._args: List[str] = []
        self._action: Action = GroupAction()
        self._batcher: Optional["Batcher"] = None

    def add_pre(self, pre: Pre) -> "TaskBuilder":
        self._pre.append(pre)
        return self

    def add_attr(self, name: str, value: str) -> "TaskBuilder":
        self._attrs.setdefault(name, []).append(value)
        return self

    def add_attrs(self, attrs: Mapping[str, Union[str, Iterable[str]]]) -> "TaskBuilder":
        for name, values in attrs.items():
            if isinstance(values, str):
                values = [values]
            for value in values:
                self.add_attr(name, value)
        return self

    def add_arg(self, *args: str) -> "TaskBuilder":
        self._args.extend(args)
        return self

    def set_action(self, action: Action) -> "TaskBuilder":
        self._action = action
        return self

    def batch_by(self, batcher: Optional["Batcher"]) -> "TaskBuilder":
        """Resolve this task's prerequisites with `batcher` instead of the plan default."""
        self._batcher = batcher
        return self

    def spec(self) -> TaskSpec:
        return TaskSpec(
            pre=tuple(self._pre),
            attrs={k: list(v) for k, v in self._attrs.items()},
            args=tuple(self._args),
            action=self._action,
        )

    def task(self) -> Task:
        spec = self.spec()
        task_type = TASK_TYPES.get(type(spec.action))
        if task_type is None:
            raise ValueError(f"Unsupported task action: {spec.action!r}")
        return task_type(self.target, self.name, spec, batcher=self._batcher)

    def register(self) -> Task:
        """Build the task and add it to the target package."""
        return self.target.add_task(self.task())
