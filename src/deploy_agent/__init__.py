"""Deploy Agent - runs build hooks and the app command inside a deploying unit."""

__version__ = "0.1.0"

from deploy_agent.core.config import Settings
from deploy_agent.core.models import DiffRecord, EnvVar, Manifest

__all__ = ["Settings", "EnvVar", "Manifest", "DiffRecord", "__version__"]
