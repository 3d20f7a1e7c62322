# monoplan/workspace.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from monoplan.batches import Batching
from monoplan.config import PlanSetup
from monoplan.errors import WorkspaceError
from monoplan.packages import Package, PackageTree
from monoplan.shell import SystemShell
from monoplan.tasks.spec import CommandAction, GroupAction, Pre, ScriptAction

PARALLEL_MARK = ","

AttrValues = Union[str, List[str]]


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class PreModel(BaseModel):
    # Prerequisite written as a mapping
    model_config = ConfigDict(extra="forbid")

    task: str
    targets: List[str] = Field(default_factory=list)
    args: List[str] = Field(default_factory=list)
    attrs: Dict[str, AttrValues] = Field(default_factory=dict)
    annex: bool = False


class TaskModel(BaseModel):
    # At most one of command/script/group; none means an empty group
    model_config = ConfigDict(extra="forbid")

    pre: List[Union[str, PreModel]] = Field(default_factory=list)
    attrs: Dict[str, AttrValues] = Field(default_factory=dict)
    args: List[str] = Field(default_factory=list)
    command: Optional[str] = None
    parallel: bool = False
    script: Optional[str] = None
    group: Optional[List[str]] = None

    @model_validator(mode="after")
    def _single_action(self) -> "TaskModel":
        actions = [a for a in (self.command, self.script, self.group) if a is not None]
        if len(actions) > 1:
            raise ValueError("task may define only one of 'command', 'script', 'group'")
        if self.parallel and self.command is None:
            raise ValueError("'parallel' applies to 'command' tasks only")
        if self.command is not None and not self.command.strip():
            raise ValueError("'command' must not be empty")
        return self


class PackageModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    path: str = "."
    tasks: Dict[str, TaskModel] = Field(default_factory=dict)


class BatchingModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    only: Optional[List[str]] = None
    with_: List[str] = Field(default_factory=list, alias="with")
    except_: List[str] = Field(default_factory=list, alias="except")


class WorkspaceModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    packages: List[PackageModel]
    batching: Optional[BatchingModel] = None
    script_runner: List[str] = Field(default_factory=lambda: ["npm", "run"])


# ---------------------------------------------------------------------------
# Loaded workspace
# ---------------------------------------------------------------------------

@dataclass
class Workspace:
    tree: PackageTree
    batching: Batching
    shell: SystemShell

    def package(self, name: Optional[str] = None) -> Package:
        return self.tree.get(name) if name else self.tree.root

    def setup(self, **kwargs) -> PlanSetup:
        return PlanSetup(batching=self.batching, shell=self.shell, **kwargs)


def _attrs(raw: Dict[str, AttrValues]) -> Dict[str, List[str]]:
    return {k: [v] if isinstance(v, str) else list(v) for k, v in raw.items()}


def _pres(entries: List[Union[str, PreModel]]) -> List[Pre]:
    """
    Turn YAML prerequisite entries into Pre values.

    A "," entry marks the following prerequisite parallel to the one before it.
    """
    pres: List[Pre] = []
    parallel = False

    for entry in entries:
        if isinstance(entry, str):
            if entry == PARALLEL_MARK:
                parallel = bool(pres)
                continue
            pres.append(Pre(task=entry, parallel=parallel))
        else:
            pres.append(
                Pre(
                    task=entry.task,
                    targets=tuple(entry.targets),
                    parallel=parallel and not entry.annex,
                    annex=entry.annex,
                    attrs=_attrs(entry.attrs),
                    args=tuple(entry.args),
                )
            )
        parallel = False

    return pres


def _register_task(package: Package, name: str, model: TaskModel) -> None:
    builder = package.new_task(name).add_attrs(_attrs(model.attrs)).add_arg(*model.args)

    for pre in _pres(model.pre):
        builder.add_pre(pre)

    if model.command is not None:
        builder.set_action(CommandAction(model.command.strip(), parallel=model.parallel))
    elif model.script is not None:
        builder.set_action(ScriptAction(model.script))
    elif model.group is not None:
        builder.set_action(GroupAction(tuple(model.group)))

    builder.register()


def build_workspace(data: dict, location: Union[str, Path] = ".") -> Workspace:
    try:
        model = WorkspaceModel.model_validate(data)
    except ValidationError as e:
        raise WorkspaceError(f"Invalid workspace: {e}") from e

    tree = PackageTree(location)
    try:
        packages = [(tree.add(p.name, p.path), p) for p in model.packages]
    except ValueError as e:
        raise WorkspaceError(str(e)) from e

    for package, pmodel in packages:
        for name, tmodel in pmodel.tasks.items():
            _register_task(package, name, tmodel)

    batching = Batching()
    if model.batching is not None:
        if model.batching.only is not None:
            batching = batching.only(model.batching.only)
        if model.batching.with_:
            batching = batching.with_(model.batching.with_)
        if model.batching.except_:
            batching = batching.except_(model.batching.except_)

    return Workspace(
        tree=tree,
        batching=batching,
        shell=SystemShell(model.script_runner),
    )


def load_workspace(path: Union[str, Path]) -> Workspace:
    """Load a workspace YAML file; package paths are relative to its directory."""
    path = Path(path).expanduser().resolve()
    if not path.is_file():
        raise FileNotFoundError(f"Workspace file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise WorkspaceError(f"{path}: invalid YAML") from e

    if not isinstance(data, dict):
        raise WorkspaceError(f"{path}: workspace must be a mapping")

    return build_workspace(data, location=path.parent)
