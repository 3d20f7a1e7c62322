# monoplan/params.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional


@dataclass(frozen=True)
class TaskParams:
    """
    Task execution parameters.

    Fields:
      attrs:       named attribute values; merging appends, duplicates kept
      args:        positional task arguments
      action_args: arguments of the task action itself (e.g. command args)

    Instances are never modified in place. Merging always builds a new value.
    """

    attrs: Dict[str, List[str]] = field(default_factory=dict)
    args: List[str] = field(default_factory=list)
    action_args: List[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------
    def extend(self, other: "TaskParams") -> "TaskParams":
        """Append `other` after this one: attrs per key, then args, then action args."""
        return TaskParams(
            attrs=merge_attrs(self.attrs, other.attrs),
            args=[*self.args, *other.args],
            action_args=[*self.action_args, *other.action_args],
        )

    def extend_attrs(self, other: "TaskParams") -> "TaskParams":
        """Like `extend`, but takes only the attributes of `other`."""
        return TaskParams(
            attrs=merge_attrs(self.attrs, other.attrs),
            args=list(self.args),
            action_args=list(self.action_args),
        )

    def attrs_only(self) -> "TaskParams":
        return TaskParams(attrs=merge_attrs(self.attrs, {}))

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    def attr(self, name: str) -> Optional[str]:
        """Last value of the attribute, or None."""
        values = self.attrs.get(name)
        return values[-1] if values else None

    def flag(self, name: str) -> bool:
        value = self.attr(name)
        if value is None:
            return False
        return value.lower() not in {"", "0", "false", "off", "no"}

    def to_dict(self) -> Dict[str, object]:
        return {
            "attrs": {k: list(v) for k, v in self.attrs.items()},
            "args": list(self.args),
            "action_args": list(self.action_args),
        }


ParamsProvider = Callable[[], TaskParams]


def merge_attrs(
    first: Mapping[str, Iterable[str]],
    second: Mapping[str, Iterable[str]],
) -> Dict[str, List[str]]:
    """Append values of `second` to those of `first`, key by key."""
    merged: Dict[str, List[str]] = {k: list(v) for k, v in first.items()}
    for key, values in second.items():
        merged.setdefault(key, []).extend(values)
    return merged


def no_params() -> TaskParams:
    return TaskParams()


def value_provider(params: TaskParams) -> ParamsProvider:
    return lambda: params


def fold_params(providers: Iterable[ParamsProvider]) -> TaskParams:
    """Evaluate providers in order and merge their results left to right."""
    result = TaskParams()
    for provider in providers:
        result = result.extend(provider())
    return result
