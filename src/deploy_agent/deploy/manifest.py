"""Loader for the application manifest and Procfile."""

import posixpath
import re
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import ValidationError

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import FileSystemError, ManifestParseError
from deploy_agent.core.models import Hooks, Manifest, ProcessDeclaration
from deploy_agent.utils.filesystem import FileSystem

logger = structlog.get_logger()

# `name: command`, split on the first colon only so commands may contain colons.
PROCFILE_LINE = re.compile(r"^([A-Za-z0-9_.-]+):\s*(\S.*)$")


def parse_manifest(text: str, source: str = "<manifest>") -> Manifest:
    """Parse manifest YAML text.

    Only ``hooks``, ``healthcheck`` and ``processes`` are read; any other
    top-level key is ignored. Procfile entries override ``processes``, see
    :meth:`ManifestLoader.load_processes`.

    Raises:
        ManifestParseError: If the YAML is malformed or has the wrong shape
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestParseError(f"Invalid YAML in {source}: {e}", code="invalid_yaml") from e

    if data is None:
        return Manifest()
    if not isinstance(data, dict):
        raise ManifestParseError(
            f"{source} must contain a mapping at the top level, got {type(data).__name__}",
            code="invalid_manifest",
        )

    hooks_data: Dict[str, Any] = data.get("hooks") or {}
    try:
        return Manifest(
            hooks=Hooks.model_validate(
                {
                    "build": hooks_data.get("build") or [],
                    "restart": hooks_data.get("restart") or {},
                }
            ),
            healthcheck=data.get("healthcheck") or {},
            processes=data.get("processes") or {},
        )
    except (ValidationError, AttributeError) as e:
        raise ManifestParseError(f"Invalid manifest structure in {source}: {e}", code="invalid_manifest") from e


def parse_procfile(text: str) -> List[ProcessDeclaration]:
    """Parse Procfile text into process declarations.

    Blank lines and ``#`` comments are skipped. Lines that are not a single
    ``name: command`` pair are dropped without error.
    """
    declarations = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        match = PROCFILE_LINE.match(line)
        if not match:
            logger.debug("Skipping malformed Procfile line", line=line)
            continue
        declarations.append(ProcessDeclaration(name=match.group(1), command=match.group(2).strip()))
    return declarations


class ManifestLoader:
    """Reads the manifest and Procfile from the application working directory."""

    def __init__(self, settings: Settings, fs: FileSystem):
        self.settings = settings
        self.fs = fs

    def _path(self, filename: str) -> str:
        return posixpath.join(self.settings.working_dir, filename)

    def _read_optional(self, path: str) -> Optional[str]:
        try:
            return self.fs.read_text(path)
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"{path} is not valid UTF-8: {e}", code="invalid_encoding") from e
        except OSError as e:
            raise FileSystemError(f"Failed to read {path}: {e}", code="read_failed") from e

    def load_manifest(self) -> Manifest:
        """Load the first manifest found, or an empty one if there is none.

        Raises:
            ManifestParseError: If the manifest exists but cannot be parsed
        """
        for filename in self.settings.manifest_filenames:
            path = self._path(filename)
            text = self._read_optional(path)
            if text is None:
                continue
            manifest = parse_manifest(text, source=path)
            logger.info(
                "Loaded manifest",
                path=path,
                build_hooks=len(manifest.hooks.build_hooks),
                has_healthcheck=bool(manifest.healthcheck),
            )
            return manifest

        logger.info("No manifest found, using empty manifest", candidates=self.settings.manifest_filenames)
        return Manifest()

    def load_processes(self, manifest: Manifest) -> Manifest:
        """Return a copy of ``manifest`` with processes read from the Procfile.

        A missing Procfile leaves the processes untouched.
        """
        path = self._path(self.settings.procfile_name)
        text = self._read_optional(path)
        if text is None:
            logger.info("No Procfile found", path=path)
            return manifest

        processes = dict(manifest.processes)
        for declaration in parse_procfile(text):
            processes[declaration.name] = declaration.command

        logger.info("Loaded Procfile", path=path, processes=sorted(processes))
        return manifest.model_copy(update={"processes": processes})
