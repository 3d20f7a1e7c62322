from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer

from monoplan.errors import MonoplanError
from monoplan.packages import Package
from monoplan.plan import Planner
from monoplan.report import plan_to_dict, render_plan
from monoplan.tasks.spec import Pre
from monoplan.tasks.task import Task
from monoplan.workspace import load_workspace

app = typer.Typer(help="monoplan CLI")


@app.callback()
def main() -> None:
    """Plan tasks across the packages of a monorepo."""


# -----------------------------
# Helpers
# -----------------------------
def _split_names(values: Optional[List[str]]) -> List[str]:
    # "--only a,b --only c" -> ["a", "b", "c"]
    names: List[str] = []
    for value in values or []:
        names.extend(n.strip() for n in value.split(",") if n.strip())
    return names


def _parse_attrs(values: Optional[List[str]]) -> Dict[str, List[str]]:
    attrs: Dict[str, List[str]] = {}
    for kv in values or []:
        if "=" not in kv:
            raise typer.BadParameter(f"--attr expects name=value, got: {kv}")
        k, v = kv.split("=", 1)
        attrs.setdefault(k.strip(), []).append(v.strip())
    return attrs


def entry_task(package: Package, task_name: str, attrs: Dict[str, List[str]], args: List[str]) -> Task:
    """
    Unregistered group task standing for the command line.

    Its only prerequisite is the requested task, so the requested name goes
    through batch expansion like any other prerequisite.
    """
    builder = package.new_task(f"<{task_name}>")
    builder.add_pre(Pre(task=task_name, attrs=attrs, args=tuple(args)))
    return builder.task()


# -----------------------------
# Commands
# -----------------------------
@app.command("plan")
def plan_cmd(
    workspace: Path = typer.Argument(..., help="Workspace YAML file"),
    task: str = typer.Argument(..., help="Task to plan"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments passed to the task"),
    package: Optional[str] = typer.Option(None, "--package", "-p", help="Package to start from (default: root)"),
    only: List[str] = typer.Option(None, "--only", "-y", help="Select only these named batches"),
    with_: List[str] = typer.Option(None, "--with", "-w", help="Also select these batches"),
    except_: List[str] = typer.Option(None, "--except", "-x", help="Exclude these batches"),
    all_: bool = typer.Option(False, "--all", help="Drop batch rules from the workspace"),
    attr: List[str] = typer.Option(None, "--attr", "-a", help="name=value (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Build the execution plan of TASK and print it."""
    try:
        ws = load_workspace(workspace)
        setup = ws.setup().with_batches(
            only=_split_names(only),
            with_=_split_names(with_),
            except_=_split_names(except_),
            reset=all_,
        )
        if verbose:
            setup.logger.setLevel(logging.DEBUG)

        entry = entry_task(ws.package(package), task, _parse_attrs(attr), list(args or []))
        call = asyncio.run(Planner(setup).plan(entry))
    except (MonoplanError, LookupError, FileNotFoundError) as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(plan_to_dict(call.plan), indent=2))
    else:
        typer.echo(render_plan(call.plan))
