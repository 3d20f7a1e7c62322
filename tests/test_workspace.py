from pathlib import Path
from textwrap import dedent

import pytest

from monoplan.batches import BatchRules
from monoplan.errors import WorkspaceError
from monoplan.plan import Planner
from monoplan.tasks import CommandAction, GroupAction, ScriptAction
from monoplan.workspace import build_workspace, load_workspace


WORKSPACE = dedent(
    """
    batching:
      except: [slow]
    script_runner: [yarn, run]
    packages:
      - name: root
        tasks:
          build:
            pre: [lint, ",", test, bundle]
            command: tsc -p .
          lint:
            command: eslint .
          test:
            command: jest
            attrs: {ci: "1"}
          bundle:
            command: rollup -c
            parallel: true
          all:
            group: ["./packages/*"]
          docs:
            script: docs
            pre:
              - task: build
                targets: ["./packages/*"]
                annex: true
                args: [--quiet]
                attrs: {mode: [prod, min]}
      - name: a
        path: packages/a
        tasks:
          build:
            command: tsc
    """
)


def _write(tmp_path: Path, text: str = WORKSPACE) -> Path:
    path = tmp_path / "monoplan.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_workspace_builds_packages_and_tasks(tmp_path: Path):
    ws = load_workspace(_write(tmp_path))

    root = ws.package()
    assert root.name == "root"
    assert ws.package("a").parent is root
    assert ws.package("a").location == tmp_path.resolve() / "packages/a"
    assert root.task_names() == ["build", "lint", "test", "bundle", "all", "docs"]

    build = root.find_task("build")
    assert build.spec.action == CommandAction("tsc -p .")
    assert [(p.task, p.parallel) for p in build.spec.pre] == [
        ("lint", False),
        ("test", True),
        ("bundle", False),
    ]
    assert root.find_task("bundle").is_parallel()
    assert root.find_task("test").spec.attrs == {"ci": ["1"]}
    assert root.find_task("all").spec.action == GroupAction(("./packages/*",))
    assert root.find_task("docs").spec.action == ScriptAction("docs")


def test_mapping_prerequisite(tmp_path: Path):
    ws = load_workspace(_write(tmp_path))

    (pre,) = ws.package().find_task("docs").spec.pre
    assert pre.task == "build"
    assert pre.targets == ("./packages/*",)
    assert pre.annex
    assert pre.args == ("--quiet",)
    assert pre.attrs == {"mode": ["prod", "min"]}


def test_workspace_setup_carries_batching_and_shell(tmp_path: Path):
    ws = load_workspace(_write(tmp_path))
    setup = ws.setup()

    assert setup.batching.rules == BatchRules(except_=frozenset({"slow"}))
    assert setup.shell.script_runner == ("yarn", "run")


@pytest.mark.asyncio
async def test_loaded_workspace_plans(tmp_path: Path):
    ws = load_workspace(_write(tmp_path))
    root = ws.package()

    plan = (await Planner(ws.setup()).plan(root.find_task("build"))).plan

    lint, test, bundle, build = (root.find_task(n) for n in ("lint", "test", "bundle", "build"))
    assert plan.has_order(lint, bundle)
    assert plan.has_order(test, bundle)
    assert plan.has_order(bundle, build)
    assert not plan.has_order(lint, test)


def test_leading_parallel_mark_is_ignored():
    ws = build_workspace(
        {"packages": [{"name": "root", "tasks": {"x": {"pre": [",", "a"]}, "a": {}}}]}
    )
    (pre,) = ws.package().find_task("x").spec.pre
    assert not pre.parallel


@pytest.mark.parametrize(
    "task",
    [
        {"command": "tsc", "script": "build"},
        {"script": "build", "parallel": True},
        {"command": "  "},
        {"comand": "tsc"},
        {"pre": [{"targets": ["."]}]},
    ],
)
def test_invalid_task_definitions(task):
    with pytest.raises(WorkspaceError):
        build_workspace({"packages": [{"name": "root", "tasks": {"x": task}}]})


def test_duplicate_package_paths_are_rejected():
    with pytest.raises(WorkspaceError):
        build_workspace({"packages": [{"name": "a"}, {"name": "b", "path": "./"}]})


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_workspace(tmp_path / "missing.yaml")


def test_invalid_yaml(tmp_path: Path):
    with pytest.raises(WorkspaceError):
        load_workspace(_write(tmp_path, "packages: [\n"))


def test_non_mapping_document(tmp_path: Path):
    with pytest.raises(WorkspaceError):
        load_workspace(_write(tmp_path, "- a\n- b\n"))
