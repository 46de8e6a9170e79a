"""Main entry point for the deploy agent."""

import argparse
import sys
from typing import List, Optional

import structlog

from deploy_agent import __version__
from deploy_agent.core.config import load_settings
from deploy_agent.core.exceptions import CommandExecutionError, DeployAgentError
from deploy_agent.deploy.agent import deploy_agent
from deploy_agent.utils.logging import setup_logging

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploy-agent",
        description="Register the unit, run build hooks and the app command, then report the deploy diff.",
    )
    parser.add_argument("server_url", help="Control-plane base URL")
    parser.add_argument("token", help="Bearer token for the control plane")
    parser.add_argument("app_name", help="Application name")
    parser.add_argument("command", help="Main command, run through a login shell")
    parser.add_argument("legacy", nargs="?", default=None, help="Legacy trailing marker, accepted and ignored")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    positional = [args.server_url, args.token, args.app_name, args.command]
    if args.legacy is not None:
        positional.append(args.legacy)

    try:
        settings = load_settings()
    except DeployAgentError as e:
        setup_logging()
        logger.error("Invalid configuration", error=str(e))
        return 1

    setup_logging(settings.log_level, settings.log_format)
    try:
        deploy_agent(positional, settings)
    except CommandExecutionError as e:
        logger.error("Deploy failed", error=str(e), command=e.command, exit_code=e.exit_code)
        return 1
    except DeployAgentError as e:
        logger.error("Deploy failed", error=str(e), code=e.code)
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
