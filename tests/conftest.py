"""
Pytest configuration and fixtures for deploy agent tests.
"""

import posixpath
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

from deploy_agent.core.config import Settings
from deploy_agent.deploy.executor import ExecuteOptions, ExecuteResult
from deploy_agent.utils.filesystem import OSFileSystem


class RecordingExecutor:
    """Executor double that records invocations instead of spawning them."""

    def __init__(self, exit_code: int = 0, output: str = "", error: Optional[Exception] = None):
        self.exit_code = exit_code
        self.output = output
        self.error = error
        self.calls: List[ExecuteOptions] = []

    def execute(self, opts: ExecuteOptions) -> ExecuteResult:
        self.calls.append(opts)
        if self.error is not None:
            raise self.error
        return ExecuteResult(exit_code=self.exit_code, output=self.output)

    def commands(self, cmd: str) -> List[ExecuteOptions]:
        return [c for c in self.calls if c.cmd == cmd]


class MemoryFileSystem:
    """In-memory FileSystem; directories are tracked explicitly."""

    def __init__(self, dirs: Optional[Set[str]] = None):
        self.files: Dict[str, str] = {}
        self.dirs: Set[str] = set(dirs or {"/"})

    def read_text(self, path: str, errors: str = "strict") -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write_text(self, path: str, content: str) -> None:
        self.dirs.add(posixpath.dirname(path))
        self.files[path] = content

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.dirs

    def is_dir(self, path: str) -> bool:
        return path in self.dirs

    def remove(self, path: str) -> None:
        if path in self.files:
            del self.files[path]
        elif path in self.dirs:
            self.dirs.discard(path)
        else:
            raise FileNotFoundError(path)


@pytest.fixture(autouse=True)
def clear_agent_env(monkeypatch):
    """Keep DEPLOY_AGENT_* variables from the host out of the tests."""
    import os
    for key in list(os.environ):
        if key.startswith("DEPLOY_AGENT_"):
            monkeypatch.delenv(key)


@pytest.fixture
def working_dir(tmp_path: Path) -> Path:
    path = tmp_path / "current"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, working_dir: Path) -> Settings:
    return Settings(
        working_dir=str(working_dir),
        app_envs_file=str(tmp_path / "app_envs"),
    )


@pytest.fixture
def fs() -> OSFileSystem:
    return OSFileSystem()


@pytest.fixture
def recorder() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def make_recorder():
    """Factory for RecordingExecutor with a chosen exit code, output or error."""
    return RecordingExecutor


@pytest.fixture
def make_memory_fs():
    """Factory for MemoryFileSystem seeded with the given directories."""
    return MemoryFileSystem
