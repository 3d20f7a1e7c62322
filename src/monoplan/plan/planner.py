# monoplan/plan/planner.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
)

from monoplan.params import ParamsProvider, no_params
from monoplan.plan.call import Call
from monoplan.plan.qualifiers import Qualifier, SyntheticGroup, TaskRef

if TYPE_CHECKING:
    from monoplan.batches import Batcher
    from monoplan.config import PlanSetup
    from monoplan.tasks.task import Task


CallInstruction = Callable[["CallPlanner"], Awaitable[None]]


async def no_instruction(planner: "CallPlanner") -> None:
    return None


@dataclass(frozen=True)
class CallDetails:
    """
    What a caller contributes to a call.

    params: provider appended to the call's parameter chain
    plan:   instruction applied to the call each time it is recorded
    """

    params: ParamsProvider = no_params
    plan: CallInstruction = no_instruction


# ---------------------------------------------------------------------------
# Planner surfaces
# ---------------------------------------------------------------------------

class CallPlanner:
    """
    Planner surface bound to one planned call.

    Tasks record their instructions through it while being planned.
    """

    def __init__(self, plan: "Plan", planned_call: Call) -> None:
        self.plan = plan
        self.planned_call = planned_call

    @property
    def setup(self) -> "PlanSetup":
        return self.plan.setup

    def qualify(self, task, qualifier: Qualifier) -> None:
        self.plan.qualify(task, qualifier)

    async def call(self, task: "Task", details: Optional[CallDetails] = None) -> Call:
        return await self.plan.call(task, details)

    def order(self, first, second) -> None:
        self.plan.order(first, second)

    def make_parallel(self, qualifiers: Iterable[Qualifier]) -> None:
        self.plan.make_parallel(qualifiers)

    def new_group(self, label: str) -> SyntheticGroup:
        return self.plan.new_group(label)

    def annex(self, call: Call) -> None:
        self.plan.annex(self.planned_call, call)


@dataclass(frozen=True)
class PrePlanner:
    """
    Planner of one prerequisite of the `dependent` call.

    Every call made through `call_pre` is collected into `resolved`, which
    the planning algorithm turns into ordering and parallel groups.
    """

    dependent: CallPlanner
    batcher: "Batcher"
    resolved: List[Call] = field(default_factory=list)

    async def call_pre(self, task: "Task", details: Optional[CallDetails] = None) -> Call:
        call = await self.dependent.call(task, details)
        if call not in self.resolved:
            self.resolved.append(call)
        return call

    def batch_by(self, batcher: Optional["Batcher"]) -> "PrePlanner":
        """Same prerequisite, resolved by another batcher. Shares `resolved`."""
        if batcher is None:
            return self
        return replace(self, batcher=batcher)


# ---------------------------------------------------------------------------
# Plan: arena of calls plus index tables
# ---------------------------------------------------------------------------

class Plan:
    """
    Call graph of one planning run.

    Calls live in an arena and are addressed by their index. Ordering edges,
    qualifier memberships and parallel groups are plain tables over those
    indices. Contradictory edges are kept as recorded.
    """

    def __init__(self, setup: "PlanSetup") -> None:
        self.setup = setup
        self.log = setup.logger
        self._arena: List[Call] = []
        self._index: Dict[TaskRef, int] = {}
        self._edges: Set[Tuple[int, int]] = set()
        self._members: Dict[Qualifier, Set[int]] = {}
        self._parallel: List[FrozenSet[Qualifier]] = []
        self._annexes: Set[Tuple[int, int]] = set()
        self._groups = 0

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    async def call(self, task: "Task", details: Optional[CallDetails] = None) -> Call:
        details = details or CallDetails()
        index = self._index.get(task.ref)

        if index is None:
            call = Call(self, task, len(self._arena), details.params)
            self._arena.append(call)
            self._index[task.ref] = call.index
            self._members.setdefault(task.ref, set()).add(call.index)
            self.log.debug("call %s", task.ref)
            call.planned = asyncio.ensure_future(task.plan_call(CallPlanner(self, call)))
        else:
            call = self._arena[index]
            call.extend(details.params)
            self.log.debug("extend %s", task.ref)

        await details.plan(CallPlanner(self, call))
        return call

    def qualify(self, task, qualifier: Qualifier) -> None:
        self._members.setdefault(qualifier, set()).add(self._index_of(task))

    def order(self, first, second) -> None:
        self._edges.add((self._index_of(first), self._index_of(second)))

    def make_parallel(self, qualifiers: Iterable[Qualifier]) -> None:
        group = frozenset(qualifiers)
        if group and group not in self._parallel:
            self._parallel.append(group)

    def new_group(self, label: str) -> SyntheticGroup:
        self._groups += 1
        return SyntheticGroup(self._groups, label)

    def annex(self, dependent: Call, call: Call) -> None:
        self._annexes.add((dependent.index, call.index))

    def _index_of(self, item) -> int:
        try:
            return self._index[item.ref]
        except KeyError:
            raise LookupError(f"Task {item.ref} is not called in this plan") from None

    # ------------------------------------------------------------------
    # Settling
    # ------------------------------------------------------------------
    async def settle(self) -> None:
        """Wait until every planning future scheduled so far (and later) is done."""
        while True:
            futures = [c.planned for c in self._arena if c.planned is not None]

            for future in futures:
                if future.done() and not future.cancelled() and future.exception() is not None:
                    raise future.exception()

            pending = [f for f in futures if not f.done()]
            if not pending:
                return
            await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)

    def abandon(self) -> None:
        """Cancel pending planning futures and consume the failed ones."""
        for future in (c.planned for c in self._arena if c.planned is not None):
            if not future.done():
                future.cancel()
            elif not future.cancelled():
                future.exception()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def calls(self) -> Tuple[Call, ...]:
        return tuple(self._arena)

    @property
    def edges(self) -> List[Tuple[Call, Call]]:
        return [(self._arena[a], self._arena[b]) for a, b in sorted(self._edges)]

    @property
    def parallel_groups(self) -> List[FrozenSet[Qualifier]]:
        return list(self._parallel)

    @property
    def annexes(self) -> List[Tuple[Call, Call]]:
        return [(self._arena[a], self._arena[b]) for a, b in sorted(self._annexes)]

    def call_of(self, task) -> Call:
        return self._arena[self._index_of(task)]

    def members(self, qualifier: Qualifier) -> List[Call]:
        return [self._arena[i] for i in sorted(self._members.get(qualifier, ()))]

    def qualifiers_of(self, call: Call) -> FrozenSet[Qualifier]:
        return frozenset(q for q, indices in self._members.items() if call.index in indices)

    def has_order(self, first, second) -> bool:
        return (self._index_of(first), self._index_of(second)) in self._edges

    def predecessors(self, call: Call) -> List[Call]:
        return [self._arena[a] for a, b in sorted(self._edges) if b == call.index]

    def is_parallel(self, first, second) -> bool:
        """Whether a recorded parallel group covers both calls."""
        first_qs = self.qualifiers_of(self.call_of(first))
        second_qs = self.qualifiers_of(self.call_of(second))
        return any(group & first_qs and group & second_qs for group in self._parallel)


class Planner:
    """Builds a fresh plan for each requested task."""

    def __init__(self, setup: Optional["PlanSetup"] = None) -> None:
        if setup is None:
            from monoplan.config import PlanSetup

            setup = PlanSetup()
        self.setup = setup

    async def plan(self, task: "Task", details: Optional[CallDetails] = None) -> Call:
        plan = Plan(self.setup)
        try:
            call = await plan.call(task, details)
            await plan.settle()
        except Exception:
            plan.abandon()
            raise
        self.setup.logger.info(
            "Planned %s: %d call(s), %d ordering edge(s)",
            task.ref,
            len(plan.calls),
            len(plan.edges),
        )
        return call
