# monoplan/batches.py

"""
Named batches.

A batch of logical task `T` in a package is a group task registered as
`<batch>/T`, or `+<batch>/T` when the batch is disabled by default.
Rules select the enabled batches:

  only    the enabled set is exactly these names
  with    additionally enable these names, even default-disabled ones
  except  remove these names; applied last, so exclusion always wins

A package without batches for `T` resolves `T` itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import (
    TYPE_CHECKING,
    Awaitable,
    Callable,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
)

from monoplan.errors import TargetReuseError
from monoplan.plan.planner import CallDetails

if TYPE_CHECKING:
    from monoplan.packages import Package, PackageSet
    from monoplan.plan.planner import CallPlanner
    from monoplan.tasks.task import Task

log = logging.getLogger("monoplan.batches")

DISABLED_MARK = "+"


@dataclass(frozen=True)
class BatchDetails(CallDetails):
    """Call details supplied by a batcher, plus an optional transient batcher."""

    batcher: Optional["Batcher"] = None

    @classmethod
    def by(cls, details: Optional[CallDetails] = None) -> "BatchDetails":
        if details is None:
            return cls()
        if isinstance(details, BatchDetails):
            return details
        return cls(params=details.params, plan=details.plan)


BatchFn = Callable[["Task", Optional[CallDetails]], Awaitable[None]]


@dataclass(frozen=True)
class BatchContext:
    """One batching request: resolve `task_name` in `target` for `dependent`."""

    dependent: "CallPlanner"
    target: "Package"
    task_name: str
    batch: BatchFn

    @property
    def for_task(self) -> str:
        return self.dependent.planned_call.task.name


Batcher = Callable[[BatchContext], Awaitable[None]]


# ---------------------------------------------------------------
# Name resolution
# ---------------------------------------------------------------
def name_variants(name: str, for_task: str) -> List[str]:
    return [
        f"{name}/{for_task}",
        f"{DISABLED_MARK}{name}/{for_task}",
        f"{name}/*",
        f"{DISABLED_MARK}{name}/*",
        name,
    ]


async def resolve_task(target: "Package", name: str, for_task: str) -> "Task":
    """
    Find the task `name` as called from `for_task`.

    Qualified aliases are tried first and accepted only when they are
    groups; the bare name is the last resort and must exist.
    """
    *aliases, bare = name_variants(name, for_task)
    for alias in aliases:
        task = target.find_task(alias)
        if task is not None and task.is_group:
            return task
    return await target.task(bare)


def batch_names(target: "Package", task_name: str) -> List[str]:
    """Batch names of `task_name` in registration order, disabled marks kept."""
    suffix = f"/{task_name}"
    names: List[str] = []
    for name in target.task_names():
        if not name.endswith(suffix):
            continue
        batch = name[: -len(suffix)]
        if batch in ("", DISABLED_MARK) or "/" in batch:
            continue
        task = target.find_task(name)
        if task is not None and task.is_group:
            names.append(batch)
    return names


def _bare(name: str) -> str:
    return name[len(DISABLED_MARK):] if name.startswith(DISABLED_MARK) else name


# ---------------------------------------------------------------
# Rules
# ---------------------------------------------------------------
@dataclass(frozen=True)
class BatchRules:
    only: Optional[FrozenSet[str]] = None
    with_: FrozenSet[str] = field(default_factory=frozenset)
    except_: FrozenSet[str] = field(default_factory=frozenset)

    def set_only(self, names: Iterable[str]) -> "BatchRules":
        return replace(self, only=(self.only or frozenset()) | frozenset(names))

    def add_with(self, names: Iterable[str]) -> "BatchRules":
        return replace(self, with_=self.with_ | frozenset(names))

    def add_except(self, names: Iterable[str]) -> "BatchRules":
        return replace(self, except_=self.except_ | frozenset(names))

    def select(self, universe: Sequence[str]) -> List[str]:
        """Enabled batch names of `universe`, in universe order."""
        if self.only is not None:
            enabled = {n for n in universe if _bare(n) in self.only}
        else:
            enabled = {n for n in universe if not n.startswith(DISABLED_MARK)}

        enabled |= {n for n in universe if _bare(n) in self.with_}
        enabled = {n for n in enabled if _bare(n) not in self.except_}

        selected: List[str] = []
        for name in universe:
            if name in enabled and name not in selected:
                selected.append(name)
        return selected


# ---------------------------------------------------------------
# Batchers
# ---------------------------------------------------------------
async def batch_task(ctx: BatchContext) -> None:
    """Resolve the requested name directly, without batch expansion."""
    task = await resolve_task(ctx.target, ctx.task_name, ctx.for_task)
    await ctx.batch(task, None)


class NamedBatches:
    """Batcher expanding named batches with the given rules."""

    def __init__(self, rules: Optional[BatchRules] = None) -> None:
        self.rules = rules or BatchRules()

    async def __call__(self, ctx: BatchContext) -> None:
        universe = batch_names(ctx.target, ctx.task_name)
        if not universe:
            await batch_task(ctx)
            return

        selected = self.rules.select(universe)
        log.debug(
            "batches of %s in %s: %s -> %s",
            ctx.task_name,
            ctx.target.name,
            universe,
            selected,
        )
        for name in selected:
            task = await resolve_task(ctx.target, _bare(name), ctx.task_name)
            await ctx.batch(task, None)


def topmost(batcher: Batcher) -> Batcher:
    """
    Apply `batcher` at this level only.

    Each batched call receives a transient `batch_task` override, so the
    group delegation below that single prerequisite resolves directly.
    """

    async def batch_topmost(ctx: BatchContext) -> None:
        async def batch(task: "Task", details: Optional[CallDetails] = None) -> None:
            details = BatchDetails.by(details)
            if details.batcher is None:
                details = replace(details, batcher=batch_task)
            await ctx.batch(task, details)

        await batcher(replace(ctx, batch=batch))

    return batch_topmost


@dataclass(frozen=True)
class Batching:
    """
    Batch rule set of a plan.

    Without rules the default strategy is `topmost(NamedBatches())`;
    configuring only/with/except switches to `NamedBatches(rules)`.
    """

    rules: Optional[BatchRules] = None

    def only(self, names: Iterable[str]) -> "Batching":
        return Batching(self._rules().set_only(names))

    def with_(self, names: Iterable[str]) -> "Batching":
        return Batching(self._rules().add_with(names))

    def except_(self, names: Iterable[str]) -> "Batching":
        return Batching(self._rules().add_except(names))

    def reset(self) -> "Batching":
        return Batching()

    def _rules(self) -> BatchRules:
        return self.rules or BatchRules()

    def batcher(self) -> Batcher:
        if self.rules is None:
            return topmost(NamedBatches())
        return NamedBatches(self.rules)


# ---------------------------------------------------------------
# Engine entry point
# ---------------------------------------------------------------
async def batch_all(
    dependent: "CallPlanner",
    targets: "PackageSet",
    task_name: str,
    is_annex: bool,
    batch: BatchFn,
    batcher: Batcher,
) -> int:
    """
    Batch `task_name` over every target package, in resolution order.

    Returns once every resulting call is recorded. An annex that yields no
    batch at all raises TargetReuseError.
    """
    count = 0

    async def counted(task: "Task", details: Optional[CallDetails] = None) -> None:
        nonlocal count
        count += 1
        await batch(task, details)

    for target in await targets.packages():
        await batcher(BatchContext(dependent, target, task_name, counted))

    if is_annex and not count:
        raise TargetReuseError(
            str(dependent.planned_call.ref),
            task_name,
            targets.selectors,
        )
    return count
