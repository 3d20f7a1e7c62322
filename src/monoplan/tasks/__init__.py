"""
Tasks and their planning algorithm.

Exports the public API:
- Task, CommandTask, ScriptTask, GroupTask
- TaskBuilder
- TaskSpec, Pre and the action types
"""
from .spec import Action, CommandAction, GroupAction, Pre, ScriptAction, TaskSpec
from .task import CommandTask, PreGroups, ScriptTask, Task
from .group import GroupTask
from .builder import TaskBuilder
