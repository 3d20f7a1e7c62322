# monoplan/packages.py

from __future__ import annotations

import posixpath
from fnmatch import fnmatchcase
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Union

from monoplan.errors import UnknownTaskError

if TYPE_CHECKING:
    from monoplan.tasks.builder import TaskBuilder
    from monoplan.tasks.task import Task


# ---------------------------------------------------------------
# Selector matching
# ---------------------------------------------------------------
def _split(path: str) -> List[str]:
    return [] if path in ("", ".") else path.split("/")


def _matches(path: str, pattern: str) -> bool:
    """
    Match a package path against a normalized selector.

    Each segment is an fnmatch pattern; a trailing `**` matches the
    base itself and everything below it.
    """
    parts = _split(path)
    pats = _split(pattern)

    if pats and pats[-1] == "**":
        head = pats[:-1]
        return len(parts) >= len(head) and all(
            fnmatchcase(p, q) for p, q in zip(parts, head)
        )

    return len(parts) == len(pats) and all(fnmatchcase(p, q) for p, q in zip(parts, pats))


# ===============================================================
class PackageTree:
    """
    Registry of workspace packages, keyed by name and by relative path.

    Parents are derived from path prefixes: the parent of `packages/app`
    is the nearest registered package among `packages` and `.`.
    """

    def __init__(self, location: Union[str, Path] = ".") -> None:
        self.location = Path(location)
        self._by_name: Dict[str, Package] = {}
        self._by_path: Dict[str, Package] = {}

    def add(self, name: str, path: str = ".") -> "Package":
        path = posixpath.normpath(path)
        if path.startswith(".."):
            raise ValueError(f"Package path escapes the workspace: {path}")
        if name in self._by_name:
            raise ValueError(f"Duplicate package name '{name}'")
        if path in self._by_path:
            raise ValueError(f"Duplicate package path '{path}'")

        package = Package(self, name, path)
        self._by_name[name] = package
        self._by_path[path] = package
        return package

    def get(self, name: str) -> "Package":
        try:
            return self._by_name[name]
        except KeyError:
            raise LookupError(f"Unknown package '{name}'") from None

    def at(self, path: str) -> Optional["Package"]:
        return self._by_path.get(posixpath.normpath(path))

    @property
    def packages(self) -> List["Package"]:
        return list(self._by_name.values())

    @property
    def root(self) -> "Package":
        root = self.at(".")
        if root is None:
            raise LookupError("Workspace has no root package")
        return root


# ===============================================================
class Package:
    """A workspace package owning an ordered set of tasks."""

    def __init__(self, tree: PackageTree, name: str, path: str) -> None:
        self.tree = tree
        self.name = name
        self.path = path
        self._tasks: Dict[str, "Task"] = {}

    @property
    def location(self) -> Path:
        return self.tree.location / self.path

    @property
    def parent(self) -> Optional["Package"]:
        path = self.path
        while path != ".":
            path = posixpath.dirname(path) or "."
            parent = self.tree.at(path)
            if parent is not None:
                return parent
        return None

    @property
    def children(self) -> List["Package"]:
        return [p for p in self.tree.packages if p.parent is self]

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------
    def new_task(self, name: str) -> "TaskBuilder":
        from monoplan.tasks.builder import TaskBuilder

        return TaskBuilder(self, name)

    def add_task(self, task: "Task") -> "Task":
        if task.target is not self:
            raise ValueError(f"Task {task.ref} belongs to another package")
        self._tasks[task.name] = task
        return task

    def find_task(self, name: str) -> Optional["Task"]:
        return self._tasks.get(name)

    async def task(self, name: str) -> "Task":
        task = self._tasks.get(name)
        if task is None:
            raise UnknownTaskError(self.name, name)
        return task

    def task_names(self) -> List[str]:
        """Task names in registration order."""
        return list(self._tasks)

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------
    def select(self, selectors: Union[str, Sequence[str]] = ()) -> "PackageSet":
        if isinstance(selectors, str):
            selectors = [selectors]
        return PackageSet(self, selectors)

    def __repr__(self) -> str:
        return f"Package({self.name!r}, path={self.path!r})"


class PackageSet:
    """
    Packages selected relative to an origin package.

    Selector segments:
      .    the package itself
      ..   its parent package (nearest registered ancestor)
      *    alone, the direct child packages
      **   trailing, the package and everything below it
    Other segments are path globs relative to the package reached by the
    leading `..` steps (`./packages/*`, `../libs/a`). An empty selector
    list selects the origin itself.
    """

    def __init__(self, origin: Package, selectors: Iterable[str]) -> None:
        self.origin = origin
        self.selectors = tuple(selectors)

    async def packages(self) -> List[Package]:
        if not self.selectors:
            return [self.origin]

        selected: List[Package] = []
        for selector in self.selectors:
            for package in self._resolve(selector):
                if package not in selected:
                    selected.append(package)
        return selected

    def _resolve(self, selector: str) -> List[Package]:
        base: Optional[Package] = self.origin
        parts = _split(posixpath.normpath(selector))

        while parts and parts[0] == "..":
            base = base.parent
            if base is None:
                return []
            parts = parts[1:]

        if not parts:
            return [base]
        if parts == ["*"]:
            return base.children

        pattern = posixpath.normpath(posixpath.join(base.path, *parts))
        return [p for p in base.tree.packages if _matches(p.path, pattern)]

    def __str__(self) -> str:
        return ",".join(self.selectors) or "."
