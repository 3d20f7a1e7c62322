from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, FrozenSet, List, Optional

from monoplan.params import ParamsProvider, TaskParams, fold_params
from monoplan.plan.qualifiers import Qualifier, TaskRef

if TYPE_CHECKING:
    from monoplan.plan.planner import Plan
    from monoplan.tasks.task import Task


class Call:
    """
    Planned invocation of one task within one plan.

    A call is created by the first `Plan.call()` for its task and extended,
    never replaced, by the following ones. Its parameters are folded from
    the provider chain on first access and cached until the chain grows.
    """

    def __init__(self, plan: "Plan", task: "Task", index: int, params: ParamsProvider) -> None:
        self.plan = plan
        self.task = task
        self.index = index
        self._providers: List[ParamsProvider] = [task.call_params, params]
        self._params: Optional[TaskParams] = None
        self._folding = False
        self.planned: Optional[asyncio.Future] = None

    @property
    def ref(self) -> TaskRef:
        return self.task.ref

    @property
    def qualifiers(self) -> FrozenSet[Qualifier]:
        return self.plan.qualifiers_of(self)

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    def params(self) -> TaskParams:
        if self._params is None:
            if self._folding:
                # Re-entered through a cyclic chain (a task calling itself
                # or two tasks requiring each other).
                return self.task.call_params()
            self._folding = True
            try:
                self._params = fold_params(self._providers)
            finally:
                self._folding = False
        return self._params

    def extend(self, params: ParamsProvider) -> None:
        self._providers.append(params)
        self._params = None

    def extend_params(self, extension: TaskParams) -> ParamsProvider:
        """Provider of this call's full parameters followed by `extension`."""
        return lambda: self.params().extend(extension)

    def extend_attrs(self, extension: TaskParams) -> ParamsProvider:
        """Provider of this call's attributes (not its args) followed by `extension`."""
        return lambda: self.params().attrs_only().extend(extension)

    # ------------------------------------------------------------------
    # Graph queries
    # ------------------------------------------------------------------
    def prerequisites(self) -> List["Call"]:
        """Calls ordered before this one, in arena order."""
        return self.plan.predecessors(self)

    def __repr__(self) -> str:
        return f"Call({self.ref}, index={self.index})"
