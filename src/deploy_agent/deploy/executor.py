"""Shell command execution for build hooks and the application command.

Commands are passed verbatim to a login shell (``<shell> -lc <command>``) so
hooks may use pipes, redirects and variable expansion. Manifest and Procfile
authors are trusted: nothing here sanitizes command text.
"""

import os
import signal
import subprocess
import sys
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Protocol, Sequence, TextIO

import structlog

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import CommandExecutionError
from deploy_agent.core.models import EnvVar, Manifest
from deploy_agent.utils.filesystem import FileSystem

logger = structlog.get_logger()

FALLBACK_WORKING_DIR = "/"
OUTPUT_TAIL_LINES = 200


@dataclass
class ExecuteOptions:
    """A single program invocation."""

    cmd: str
    args: List[str]
    directory: str
    env: Dict[str, str] = field(default_factory=dict)
    timeout: Optional[float] = None


@dataclass
class ExecuteResult:
    exit_code: int
    output: str = ""


class Executor(Protocol):
    """Runs one program to completion."""

    def execute(self, opts: ExecuteOptions) -> ExecuteResult:
        """Run the program. Raises OSError if it cannot be spawned and
        subprocess.TimeoutExpired if it exceeds ``opts.timeout``."""
        ...


class OSExecutor:
    """Executor that spawns real processes and streams their output.

    Output lines are echoed to ``stream`` (stdout by default) as they arrive;
    only the last ``tail_lines`` are kept for error reporting. Bytes that are
    not valid UTF-8 are replaced rather than rejected.
    """

    def __init__(self, stream: Optional[TextIO] = None, tail_lines: int = OUTPUT_TAIL_LINES):
        self.stream = stream
        self.tail_lines = tail_lines

    def execute(self, opts: ExecuteOptions) -> ExecuteResult:
        out = self.stream or sys.stdout
        process = subprocess.Popen(
            [opts.cmd, *opts.args],
            cwd=opts.directory,
            env=opts.env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )

        timed_out = threading.Event()
        timer: Optional[threading.Timer] = None
        if opts.timeout is not None:
            def _kill():
                timed_out.set()
                _kill_process_group(process)

            timer = threading.Timer(opts.timeout, _kill)
            timer.daemon = True
            timer.start()

        tail: Deque[str] = deque(maxlen=self.tail_lines)
        try:
            for raw in iter(process.stdout.readline, b""):
                line = raw.decode("utf-8", errors="replace")
                out.write(line)
                out.flush()
                tail.append(line)
            process.stdout.close()
            exit_code = process.wait()
        finally:
            if timer is not None:
                timer.cancel()

        output = "".join(tail)
        if timed_out.is_set():
            raise subprocess.TimeoutExpired(process.args, opts.timeout, output=output)
        return ExecuteResult(exit_code=exit_code, output=output)


def _kill_process_group(process: subprocess.Popen) -> None:
    """Kill the shell and anything it spawned, so the output pipe closes."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def build_environment(envs: Optional[Sequence[EnvVar]]) -> Dict[str, str]:
    """Merge the process environment with ``envs``; later entries win."""
    env = dict(os.environ)
    for var in envs or []:
        env[var.name] = var.value
    return env


class CommandExecutor:
    """Runs ordered command lists in the application working directory."""

    def __init__(self, settings: Settings, fs: FileSystem, executor: Optional[Executor] = None):
        self.settings = settings
        self.fs = fs
        self.executor = executor or OSExecutor()

    def working_dir(self) -> str:
        """Configured working directory, or ``/`` if it does not exist."""
        if self.fs.is_dir(self.settings.working_dir):
            return self.settings.working_dir
        logger.warning(
            "Working directory does not exist, falling back to root",
            working_dir=self.settings.working_dir,
        )
        return FALLBACK_WORKING_DIR

    def exec_script(self, commands: Sequence[str], envs: Optional[Sequence[EnvVar]] = None) -> None:
        """Run ``commands`` in order, stopping at the first failure.

        Raises:
            CommandExecutionError: If a command cannot be spawned, times out
                or exits non-zero
        """
        directory = self.working_dir()
        env = build_environment(envs)

        for command in commands:
            opts = ExecuteOptions(
                cmd=self.settings.shell,
                args=["-lc", command],
                directory=directory,
                env=env,
                timeout=self.settings.command_timeout,
            )
            logger.info("Running command", command=command, cwd=directory)
            try:
                result = self.executor.execute(opts)
            except subprocess.TimeoutExpired as e:
                output = e.output if isinstance(e.output, str) else ""
                raise CommandExecutionError(
                    f"Command timed out after {opts.timeout}s: {command}",
                    command=command,
                    output=output,
                ) from e
            except OSError as e:
                raise CommandExecutionError(
                    f"Failed to run command {command!r}: {e}",
                    command=command,
                ) from e

            if result.exit_code != 0:
                logger.error("Command failed", command=command, exit_code=result.exit_code)
                raise CommandExecutionError(
                    f"Command {command!r} exited with status {result.exit_code}",
                    command=command,
                    exit_code=result.exit_code,
                    output=result.output,
                )
            logger.info("Command finished", command=command, exit_code=result.exit_code)

    def build_hooks(self, manifest: Manifest, envs: Optional[Sequence[EnvVar]] = None) -> None:
        """Run every build hook in declaration order with the same environment."""
        hooks = manifest.hooks.build_hooks
        if not hooks:
            logger.info("No build hooks declared")
            return

        logger.info("Running build hooks", count=len(hooks))
        for hook in hooks:
            self.exec_script([hook], envs)
