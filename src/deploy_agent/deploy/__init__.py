"""Deploy pipeline steps."""

from .agent import DeployAgent, DeployArgs, deploy_agent
from .client import ControlPlaneClient
from .diff import read_diff_deploy
from .envs import save_app_envs_file
from .executor import CommandExecutor, ExecuteOptions, ExecuteResult, Executor, OSExecutor
from .manifest import ManifestLoader, parse_manifest, parse_procfile

__all__ = [
    "DeployAgent",
    "DeployArgs",
    "deploy_agent",
    "ControlPlaneClient",
    "read_diff_deploy",
    "save_app_envs_file",
    "CommandExecutor",
    "ExecuteOptions",
    "ExecuteResult",
    "Executor",
    "OSExecutor",
    "ManifestLoader",
    "parse_manifest",
    "parse_procfile",
]
