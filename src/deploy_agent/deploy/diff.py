"""Staged diff artifact reader."""

import posixpath

import structlog

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import FileSystemError
from deploy_agent.core.models import DiffRecord
from deploy_agent.utils.filesystem import FileSystem

logger = structlog.get_logger()


def read_diff_deploy(settings: Settings, fs: FileSystem) -> DiffRecord:
    """Read the staged diff; no diff file means this is the first deploy.

    Bytes that are not valid UTF-8 (e.g. Latin-1 sources) are replaced so a
    diff never fails a deploy that has already run.

    Raises:
        FileSystemError: If the diff exists but cannot be read
    """
    path = posixpath.join(settings.working_dir, settings.diff_filename)
    try:
        content = fs.read_text(path, errors="replace")
    except FileNotFoundError:
        logger.info("No staged diff, treating as first deploy", path=path)
        return DiffRecord(content="", is_first_deploy=True)
    except OSError as e:
        raise FileSystemError(f"Failed to read diff {path}: {e}", code="read_failed") from e

    return DiffRecord(content=content, is_first_deploy=False)
