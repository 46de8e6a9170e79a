"""Custom exceptions for the deploy agent."""

from typing import Optional


class DeployAgentError(Exception):
    """Base exception for all deploy agent errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(DeployAgentError):
    """Configuration error."""
    pass


class FileSystemError(DeployAgentError):
    """Unexpected filesystem failure while reading or writing an artifact."""
    pass


class ManifestParseError(DeployAgentError):
    """Application manifest is not valid YAML or has the wrong shape."""
    pass


class RegistrationError(DeployAgentError):
    """Unit registration against the control plane failed."""
    pass


class CommandExecutionError(DeployAgentError):
    """A hook or the main command could not be spawned or exited non-zero."""

    def __init__(
        self,
        message: str,
        command: str,
        exit_code: Optional[int] = None,
        output: str = "",
    ):
        super().__init__(message, code="command_failed")
        self.command = command
        self.exit_code = exit_code
        self.output = output


class DiffReportError(DeployAgentError):
    """Diff could not be reported to the control plane."""
    pass
