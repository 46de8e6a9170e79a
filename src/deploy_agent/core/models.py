"""Core data models for the deploy agent."""

from typing import Dict, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, JsonValue, model_validator


# Schema-free YAML value (string, number, bool, null, sequence or mapping),
# forwarded to the control plane without interpretation.
ConfigValue = JsonValue


class EnvVar(BaseModel):
    """Environment variable returned by unit registration."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., validation_alias=AliasChoices("name", "Name"))
    value: str = Field("", validation_alias=AliasChoices("value", "Value"))
    public: bool = Field(False, validation_alias=AliasChoices("public", "Public"))


class Hooks(BaseModel):
    """Hooks section of the application manifest."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    build_hooks: List[str] = Field(default_factory=list, alias="build", description="Commands run before the main command")
    restart: Dict[str, ConfigValue] = Field(default_factory=dict, description="Opaque restart hooks (before/after)")


class Manifest(BaseModel):
    """Application manifest (tsuru.yaml / app.yaml) plus Procfile processes.

    Immutable once loaded; use :func:`deploy_agent.deploy.manifest.load_processes`
    to obtain a copy with processes filled in.
    """

    model_config = ConfigDict(frozen=True)

    hooks: Hooks = Field(default_factory=Hooks)
    healthcheck: Dict[str, ConfigValue] = Field(default_factory=dict)
    processes: Dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        """True when the manifest declares nothing at all."""
        return (
            not self.hooks.build_hooks
            and not self.hooks.restart
            and not self.healthcheck
            and not self.processes
        )

    def custom_data(self) -> Dict[str, ConfigValue]:
        """Manifest contents as sent to the control plane on registration."""
        return {
            "hooks": {
                "build": list(self.hooks.build_hooks),
                "restart": dict(self.hooks.restart),
            },
            "healthcheck": dict(self.healthcheck),
            "processes": dict(self.processes),
        }


class ProcessDeclaration(BaseModel):
    """One `name: command` entry of a Procfile."""

    model_config = ConfigDict(frozen=True)

    name: str
    command: str


class DiffRecord(BaseModel):
    """Staged source diff for the current deploy."""

    content: str = ""
    is_first_deploy: bool = True

    @model_validator(mode="after")
    def check_first_deploy(self) -> "DiffRecord":
        if self.content and self.is_first_deploy:
            raise ValueError("a deploy with diff content cannot be a first deploy")
        return self
