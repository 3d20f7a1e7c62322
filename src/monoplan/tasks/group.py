from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, List, Optional, Tuple

from monoplan.batches import BatchDetails, batch_all
from monoplan.plan.planner import CallDetails, CallPlanner, PrePlanner
from monoplan.params import TaskParams
from monoplan.shell import NOOP_EXECUTION
from monoplan.tasks.spec import Pre
from monoplan.tasks.task import Task

if TYPE_CHECKING:
    from monoplan.plan.call import Call
    from monoplan.shell import Execution


class GroupTask(Task):
    """
    No-op task delegating to sub-tasks of its member packages.

    Called as a prerequisite, a group with members records its own call and
    then calls the sub-task in every member as a prerequisite of the
    original dependent, ordered after the group. The group itself does not
    gate the dependent.
    """

    def sub_task(self, pre: Pre) -> Tuple[str, List[str]]:
        """Sub-task name and args requested by `pre`."""
        args = list(pre.args)
        if pre.task != self.name:
            return pre.task, args
        if args and not args[0].startswith("-"):
            return args[0], args[1:]
        return self.name, args

    async def call_as_pre(self, planner: PrePlanner, pre: Pre, details: CallDetails) -> None:
        members = self.spec.action.targets
        if not members:
            await super().call_as_pre(planner, pre, details)
            return

        sub_name, sub_args = self.sub_task(pre)
        dependent = planner.dependent

        inherited = dependent.planned_call.extend_attrs(TaskParams(attrs=pre.attrs))
        await dependent.call(
            self,
            CallDetails(
                params=lambda: inherited().extend_attrs(details.params()),
                plan=details.plan,
            ),
        )

        sub_pre = replace(pre, task=sub_name, args=tuple(sub_args))

        async def batch(sub_task: Task, sub_details: Optional[CallDetails] = None) -> None:
            if sub_task is self:
                return
            sub_details = BatchDetails.by(sub_details)

            async def plan(sub_planner: CallPlanner) -> None:
                sub_planner.order(self, sub_planner.planned_call.task)
                await details.plan(sub_planner)
                await sub_details.plan(sub_planner)

            await sub_task.call_as_pre(
                planner.batch_by(sub_details.batcher),
                sub_pre,
                CallDetails(
                    params=lambda: self.call_params()
                    .extend(details.params())
                    .extend(sub_details.params()),
                    plan=plan,
                ),
            )

        await batch_all(
            dependent,
            self.target.select(members),
            sub_name,
            pre.annex,
            batch,
            planner.batcher,
        )

    def exec(self, call: "Call") -> "Execution":
        return NOOP_EXECUTION
