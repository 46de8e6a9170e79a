"""Deploy pipeline run inside the application unit."""

from dataclasses import dataclass
from typing import Optional, Sequence

import httpx
import structlog

from deploy_agent.core.config import Settings
from deploy_agent.core.exceptions import ConfigurationError, DiffReportError
from deploy_agent.core.models import DiffRecord
from deploy_agent.deploy.client import ControlPlaneClient
from deploy_agent.deploy.diff import read_diff_deploy
from deploy_agent.deploy.envs import save_app_envs_file
from deploy_agent.deploy.executor import CommandExecutor, Executor
from deploy_agent.deploy.manifest import ManifestLoader
from deploy_agent.utils.filesystem import FileSystem, OSFileSystem
from deploy_agent.utils.logging import bind_deploy_context

logger = structlog.get_logger()


@dataclass
class DeployArgs:
    """Positional arguments: server URL, token, app name, command and an
    optional trailing legacy marker (older platforms append ``deploy``)."""

    server_url: str
    token: str
    app_name: str
    command: str
    legacy_flag: Optional[str] = None

    @classmethod
    def from_argv(cls, argv: Sequence[str]) -> "DeployArgs":
        if len(argv) not in (4, 5):
            raise ConfigurationError(
                f"expected 4 or 5 arguments (server_url token app_name command [legacy]), got {len(argv)}",
                code="bad_arguments",
            )
        return cls(*argv)


class DeployAgent:
    """Runs the deploy pipeline.

    load manifest -> register unit -> persist envs -> build hooks ->
    main command -> report diff. Every step but the diff report is fatal.
    """

    def __init__(
        self,
        settings: Settings,
        fs: Optional[FileSystem] = None,
        executor: Optional[Executor] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings
        self.fs = fs or OSFileSystem()
        self.transport = transport
        self.loader = ManifestLoader(settings, self.fs)
        self.commands = CommandExecutor(settings, self.fs, executor)

    def run(self, args: DeployArgs) -> DiffRecord:
        """Execute the pipeline; returns the diff record that was reported."""
        bind_deploy_context(app_name=args.app_name, server_url=args.server_url)
        logger.info("Starting deploy", command=args.command, legacy=args.legacy_flag is not None)

        manifest = self.loader.load_processes(self.loader.load_manifest())

        client = ControlPlaneClient(
            args.server_url,
            args.token,
            timeout=self.settings.request_timeout_seconds,
            transport=self.transport,
        )
        envs = client.register_unit(args.app_name, manifest)

        save_app_envs_file(envs, self.settings.app_envs_file, self.fs)

        self.commands.build_hooks(manifest, envs)
        self.commands.exec_script([args.command], envs)

        diff = read_diff_deploy(self.settings, self.fs)
        try:
            client.report_diff(args.app_name, diff)
        except DiffReportError as e:
            logger.warning("Failed to report deploy diff", error=str(e))

        logger.info("Deploy finished", first_deploy=diff.is_first_deploy)
        return diff


def deploy_agent(
    argv: Sequence[str],
    settings: Settings,
    *,
    fs: Optional[FileSystem] = None,
    executor: Optional[Executor] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> DiffRecord:
    """Parse positional arguments and run the deploy pipeline."""
    args = DeployArgs.from_argv(argv)
    agent = DeployAgent(settings, fs=fs, executor=executor, transport=transport)
    return agent.run(args)
