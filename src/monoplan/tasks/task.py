# monoplan/tasks/task.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from monoplan.batches import BatchDetails, batch_all
from monoplan.params import TaskParams, merge_attrs
from monoplan.plan.planner import CallDetails, CallPlanner, PrePlanner
from monoplan.plan.qualifiers import Qualifier, TaskRef
from monoplan.tasks.spec import GroupAction, Pre, TaskSpec

if TYPE_CHECKING:
    from monoplan.batches import Batcher
    from monoplan.packages import Package
    from monoplan.plan.call import Call
    from monoplan.shell import Execution


# ---------------------------------------------------------------------------
# Prerequisite fold state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PreGroups:
    """
    Accumulators of the prerequisite walk.

    parallel: qualifiers collected since the last sequential boundary
    previous: calls of the preceding sequential group
    current:  calls resolved since the last sequential boundary
    """

    parallel: Tuple[Qualifier, ...] = ()
    previous: Tuple["Call", ...] = ()
    current: Tuple["Call", ...] = ()

    def next_step(self, planner: CallPlanner) -> "PreGroups":
        """Close the current group: it becomes the one to wait for."""
        planner.make_parallel(self.parallel)
        return PreGroups(previous=self.current)

    def add(self, planner: CallPlanner, resolved: Sequence["Call"], label: str) -> "PreGroups":
        if not resolved:
            return self

        for call in resolved:
            for prev in self.previous:
                planner.order(prev, call)

        if len(resolved) == 1:
            qualifier: Qualifier = resolved[0].ref
        else:
            qualifier = planner.new_group(label)
            for call in resolved:
                planner.qualify(call, qualifier)

        return PreGroups(
            parallel=(*self.parallel, qualifier),
            previous=self.previous,
            current=(*self.current, *resolved),
        )


# ===========================================================================
class Task:
    """
    Immutable task bound to its package.

    Subclasses differ in how they execute and in the parameters they start
    their calls with.
    """

    def __init__(
        self,
        target: "Package",
        name: str,
        spec: TaskSpec,
        batcher: Optional["Batcher"] = None,
    ) -> None:
        self.target = target
        self.name = name
        self.spec = spec
        self.ref = TaskRef(target.name, name)
        self._batcher = batcher

    @property
    def is_group(self) -> bool:
        return isinstance(self.spec.action, GroupAction)

    def call_params(self) -> TaskParams:
        """Initial parameters of every call to this task."""
        return TaskParams(attrs=merge_attrs(self.spec.attrs, {}), args=list(self.spec.args))

    def is_parallel(self) -> bool:
        """Whether this task may run in parallel with its prerequisites."""
        return False

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------
    async def call_as_pre(self, planner: PrePlanner, pre: Pre, details: CallDetails) -> None:
        """Call this task as a prerequisite of `planner.dependent`."""
        inherited = planner.dependent.planned_call.extend_attrs(
            TaskParams(attrs=pre.attrs, args=list(pre.args))
        )
        await planner.call_pre(
            self,
            CallDetails(
                params=lambda: inherited().extend(details.params()),
                plan=details.plan,
            ),
        )

    async def plan_call(self, planner: CallPlanner) -> None:
        """Record this task's own instructions. Runs once per plan."""
        await self.plan_pre(planner)

    async def plan_pre(self, planner: CallPlanner) -> None:
        groups = PreGroups()
        for pre in self.spec.pre:
            groups = await self.plan_step(planner, groups, pre)

        for prev in groups.current:
            planner.order(prev, self)

        parallel = groups.parallel
        if self.is_parallel():
            parallel = (*parallel, self.ref)
        planner.make_parallel(parallel)

    async def plan_step(self, planner: CallPlanner, groups: PreGroups, pre: Pre) -> PreGroups:
        """Fold one prerequisite into the accumulated groups."""
        if not pre.annex and not pre.parallel:
            groups = groups.next_step(planner)

        resolved = await self.resolve_pre(planner, pre)

        if pre.annex:
            for call in resolved:
                planner.annex(call)
            return groups

        targets = ",".join(pre.targets) or "."
        return groups.add(planner, resolved, f"{targets} */{pre.task}")

    async def resolve_pre(self, planner: CallPlanner, pre: Pre) -> Tuple["Call", ...]:
        batcher = self._batcher or planner.setup.batching.batcher()
        pre_planner = PrePlanner(dependent=planner, batcher=batcher)

        async def batch(task: "Task", details: Optional[CallDetails] = None) -> None:
            details = BatchDetails.by(details)
            await task.call_as_pre(pre_planner.batch_by(details.batcher), pre, details)

        await batch_all(
            planner,
            self.target.select(pre.targets),
            pre.task,
            pre.annex,
            batch,
            batcher,
        )
        return tuple(pre_planner.resolved)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def exec(self, call: "Call") -> "Execution":
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.ref})"


class CommandTask(Task):
    """Runs a shell command; the command's own args become action args."""

    def call_params(self) -> TaskParams:
        return TaskParams(
            attrs=merge_attrs(self.spec.attrs, {}),
            args=list(self.spec.args),
            action_args=list(self.spec.action.args),
        )

    def is_parallel(self) -> bool:
        return self.spec.action.parallel

    def exec(self, call: "Call") -> "Execution":
        shell = call.plan.setup.shell
        return shell.exec_command(self.target.location, self.spec.action.command, call.params())


class ScriptTask(Task):
    """Runs a package script through the configured script runner."""

    def exec(self, call: "Call") -> "Execution":
        shell = call.plan.setup.shell
        return shell.exec_script(self.target.location, self.spec.action.script, call.params())
