"""
Planning core of a monorepo task runner.

Exports the public API:
- Planner, Plan, Call, CallDetails
- PlanSetup
- PackageTree, Package
- TaskBuilder, Pre and the action types
- Batching, BatchRules
- TaskParams
"""
from .params import TaskParams
from .errors import (
    AbortedExecution,
    FailedExecution,
    MonoplanError,
    TargetReuseError,
    UnknownTaskError,
    WorkspaceError,
)
from .plan import Call, CallDetails, Plan, Planner, SyntheticGroup, TaskRef
from .batches import BatchRules, Batching, NamedBatches, batch_task, topmost
from .config import PlanSetup
from .packages import Package, PackageSet, PackageTree
from .tasks import CommandAction, GroupAction, Pre, ScriptAction, TaskBuilder
from .workspace import Workspace, load_workspace

__version__ = "0.1.0"
