# monoplan/shell.py

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from monoplan.errors import AbortedExecution, FailedExecution
from monoplan.params import TaskParams


class Execution:
    """
    Handle of a running process.

    `wait()` resolves when the process exits successfully and raises
    AbortedExecution / FailedExecution otherwise. `abort()` kills it.
    """

    def __init__(self, start: Callable[[], Awaitable[asyncio.subprocess.Process]]) -> None:
        self._process: Optional[asyncio.subprocess.Process] = None
        self._done = asyncio.ensure_future(self._run(start))

    async def _run(self, start) -> None:
        self._process = await start()
        code = await self._process.wait()

        if code < 0:
            raise AbortedExecution(signal=-code)
        if code > 127:
            raise AbortedExecution(code=code)
        if code:
            raise FailedExecution(code)

    async def wait(self) -> None:
        try:
            await self._done
        except asyncio.CancelledError:
            raise AbortedExecution() from None

    def abort(self) -> None:
        if self._process is None:
            self._done.cancel()
        elif self._process.returncode is None:
            self._process.kill()


class NoopExecution:
    """Execution of a task that does nothing."""

    async def wait(self) -> None:
        return None

    def abort(self) -> None:
        return None


NOOP_EXECUTION = NoopExecution()


class SystemShell:
    """Spawns task processes through the system shell."""

    def __init__(self, script_runner: Sequence[str] = ("npm", "run")) -> None:
        self.script_runner = tuple(script_runner)

    def exec_command(self, cwd: Path, command: str, params: TaskParams) -> Execution:
        """Run `command` as shell text; only the appended arguments are quoted."""
        args = [*params.action_args, *params.args]
        return self._run(cwd, f"{command} {shlex.join(args)}" if args else command)

    def exec_script(self, cwd: Path, name: str, params: TaskParams) -> Execution:
        argv = [*self.script_runner]
        if self.script_runner and Path(self.script_runner[0]).name == "npm":
            argv.append("--")
        return self._run(cwd, shlex.join([*argv, name, *params.args]))

    def _run(self, cwd: Path, cmdline: str) -> Execution:
        def start() -> Awaitable[asyncio.subprocess.Process]:
            return asyncio.create_subprocess_shell(cmdline, cwd=str(cwd), env=dict(os.environ))

        return Execution(start)
