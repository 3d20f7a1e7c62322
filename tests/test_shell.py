import asyncio
from pathlib import Path

import pytest

from monoplan.errors import AbortedExecution, FailedExecution
from monoplan.params import TaskParams
from monoplan.plan import Planner
from monoplan.shell import NOOP_EXECUTION, SystemShell
from monoplan.tasks import CommandAction, Pre
from monoplan.workspace import build_workspace


@pytest.mark.asyncio
async def test_successful_command(tmp_path):
    execution = SystemShell().exec_command(tmp_path, "true", TaskParams())
    await execution.wait()


@pytest.mark.asyncio
async def test_command_runs_in_package_dir_with_args(tmp_path):
    params = TaskParams(args=["out.txt"], action_args=["-c", 'pwd > "$0"'])

    await SystemShell().exec_command(tmp_path, "sh", params).wait()

    written = Path((tmp_path / "out.txt").read_text().strip())
    assert written.resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_failed_command(tmp_path):
    execution = SystemShell().exec_command(tmp_path, "sh", TaskParams(action_args=["-c", "exit 3"]))

    with pytest.raises(FailedExecution) as e:
        await execution.wait()
    assert e.value.code == 3


@pytest.mark.asyncio
async def test_exit_code_above_127_is_an_abort(tmp_path):
    execution = SystemShell().exec_command(tmp_path, "sh", TaskParams(action_args=["-c", "exit 130"]))

    with pytest.raises(AbortedExecution) as e:
        await execution.wait()
    assert e.value.code == 130


@pytest.mark.asyncio
async def test_abort_running_process(tmp_path):
    execution = SystemShell().exec_command(tmp_path, "sleep", TaskParams(args=["10"]))
    await asyncio.sleep(0.2)

    execution.abort()

    with pytest.raises(AbortedExecution):
        await execution.wait()


@pytest.mark.asyncio
async def test_abort_before_start(tmp_path):
    execution = SystemShell().exec_command(tmp_path, "sleep", TaskParams(args=["10"]))

    execution.abort()

    with pytest.raises(AbortedExecution):
        await execution.wait()


@pytest.mark.asyncio
async def test_script_runner_separates_args(tmp_path):
    shell = SystemShell(["sh", "-c", 'echo "$@" > out.txt', "runner"])

    await shell.exec_script(tmp_path, "dev", TaskParams(args=["--port", "3000"])).wait()

    assert (tmp_path / "out.txt").read_text().strip() == "dev --port 3000"


@pytest.mark.asyncio
async def test_planned_calls_execute(tree, setup):
    root = tree.root
    root.location.mkdir(parents=True, exist_ok=True)
    touch = root.new_task("touch").set_action(CommandAction("touch", ("done.txt",))).register()
    everything = root.new_task("all").add_pre(Pre("touch")).register()

    call = await Planner(setup).plan(everything)

    await everything.exec(call).wait()
    assert everything.exec(call) is NOOP_EXECUTION

    await touch.exec(call.plan.call_of(touch)).wait()
    assert (root.location / "done.txt").exists()


# ==========================================================
# SHELL SYNTAX
# ==========================================================

@pytest.mark.asyncio
async def test_workspace_command_keeps_shell_syntax(tmp_path):
    ws = build_workspace(
        {
            "packages": [
                {
                    "name": "root",
                    "tasks": {"out": {"command": "echo one > out.txt && echo two >> out.txt"}},
                }
            ]
        },
        location=tmp_path,
    )
    task = ws.package().find_task("out")
    call = await Planner(ws.setup()).plan(task)

    await task.exec(call).wait()

    assert (tmp_path / "out.txt").read_text().split() == ["one", "two"]


@pytest.mark.asyncio
async def test_appended_args_are_quoted(tmp_path):
    params = TaskParams(args=["a b", "$HOME", "; touch hacked"])

    await SystemShell().exec_command(tmp_path, "printf '%s\\n' > out.txt", params).wait()

    assert (tmp_path / "out.txt").read_text().splitlines() == ["a b", "$HOME", "; touch hacked"]
    assert not (tmp_path / "hacked").exists()
