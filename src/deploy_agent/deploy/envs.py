"""Persists the application environment for processes started outside the agent."""

from typing import Sequence

import structlog

from deploy_agent.core.exceptions import FileSystemError
from deploy_agent.core.models import EnvVar
from deploy_agent.utils.filesystem import FileSystem

logger = structlog.get_logger()


def shell_quote(value: str) -> str:
    """Wrap ``value`` in single quotes, escaping embedded single quotes."""
    return "'" + value.replace("'", "'\\''") + "'"


def render_app_envs(envs: Sequence[EnvVar]) -> str:
    return "".join(f"export {var.name}={shell_quote(var.value)}\n" for var in envs)


def save_app_envs_file(envs: Sequence[EnvVar], path: str, fs: FileSystem) -> None:
    """Write ``export NAME='VALUE'`` lines, in order, to ``path``.

    Raises:
        FileSystemError: If the file cannot be written
    """
    try:
        fs.write_text(path, render_app_envs(envs))
    except OSError as e:
        raise FileSystemError(f"Failed to write app envs file {path}: {e}", code="write_failed") from e
    logger.info("Saved app environment", path=path, env_count=len(envs))
