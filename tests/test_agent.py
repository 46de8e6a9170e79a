"""End-to-end tests for the deploy pipeline against a mock control plane."""

import os
from pathlib import Path

import httpx
import pytest

from deploy_agent.core.exceptions import (
    CommandExecutionError,
    ConfigurationError,
    ManifestParseError,
    RegistrationError,
)
from deploy_agent.deploy.agent import DeployArgs, deploy_agent


class ControlPlane:
    """Mock control plane recording request paths."""

    def __init__(self, register_status: int = 200, diff_status: int = 200):
        self.register_status = register_status
        self.diff_status = diff_status
        self.paths = []
        self.diff_bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        if request.url.path == "/apps/app1/diff":
            self.diff_bodies.append(request.content.decode())
            return httpx.Response(self.diff_status, text="")
        assert request.url.path == "/apps/app1/units/register"
        return httpx.Response(
            self.register_status,
            json=[{"name": "foo", "value": "bar", "public": True}],
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def app_dir(working_dir: Path) -> Path:
    (working_dir / "tsuru.yml").write_text("hooks:\n  build:\n    - ls\n    - ls")
    (working_dir / "diff").write_text("diff")
    (working_dir / "Procfile").write_text("web: run-app")
    return working_dir


def test_deploy(app_dir, settings, fs, recorder):
    plane = ControlPlane()

    diff = deploy_agent(
        ["http://tsuru.example.com", "fake-token", "app1", "ls"],
        settings,
        fs=fs,
        executor=recorder,
        transport=plane.transport,
    )

    assert plane.paths == ["/apps/app1/units/register", "/apps/app1/diff"]
    assert plane.diff_bodies == ["diff"]
    assert diff.is_first_deploy is False

    executed = recorder.commands("/bin/bash")
    assert [c.args for c in executed] == [["-lc", "ls"], ["-lc", "ls"], ["-lc", "ls"]]
    main = executed[-1]
    assert main.env["foo"] == "bar"
    assert main.env == executed[0].env
    assert main.directory == str(app_dir)

    assert Path(settings.app_envs_file).read_text() == "export foo='bar'\n"


def test_deploy_backward_compatibility(app_dir, settings, fs, recorder):
    plane = ControlPlane()

    deploy_agent(
        ["http://tsuru.example.com", "fake-token", "app1", "ls", "deploy"],
        settings,
        fs=fs,
        executor=recorder,
        transport=plane.transport,
    )

    assert plane.paths == ["/apps/app1/units/register", "/apps/app1/diff"]
    assert len(recorder.calls) == 3


def test_deploy_first_deploy_without_manifest(working_dir, settings, fs, recorder):
    plane = ControlPlane()

    diff = deploy_agent(
        ["http://tsuru.example.com", "fake-token", "app1", "python app.py"],
        settings,
        fs=fs,
        executor=recorder,
        transport=plane.transport,
    )

    assert diff.is_first_deploy is True
    assert plane.diff_bodies == [""]
    assert [c.args for c in recorder.calls] == [["-lc", "python app.py"]]


def test_deploy_registration_failure_runs_nothing(app_dir, settings, fs, recorder):
    plane = ControlPlane(register_status=403)

    with pytest.raises(RegistrationError):
        deploy_agent(
            ["http://tsuru.example.com", "fake-token", "app1", "ls"],
            settings,
            fs=fs,
            executor=recorder,
            transport=plane.transport,
        )

    assert recorder.calls == []
    assert not os.path.exists(settings.app_envs_file)
    assert plane.paths == ["/apps/app1/units/register"]


def test_deploy_hook_failure_skips_main_command(app_dir, settings, fs, make_recorder):
    plane = ControlPlane()
    failing = make_recorder(exit_code=2)

    with pytest.raises(CommandExecutionError):
        deploy_agent(
            ["http://tsuru.example.com", "fake-token", "app1", "ls"],
            settings,
            fs=fs,
            executor=failing,
            transport=plane.transport,
        )

    assert len(failing.calls) == 1
    assert "/apps/app1/diff" not in plane.paths
    # envs file is written before hooks run and is not rolled back
    assert Path(settings.app_envs_file).exists()


def test_deploy_malformed_manifest_aborts_before_registration(working_dir, settings, fs, recorder):
    (working_dir / "tsuru.yml").write_text("hooks: [unclosed\n")
    plane = ControlPlane()

    with pytest.raises(ManifestParseError):
        deploy_agent(
            ["http://tsuru.example.com", "fake-token", "app1", "ls"],
            settings,
            fs=fs,
            executor=recorder,
            transport=plane.transport,
        )

    assert plane.paths == []
    assert recorder.calls == []


def test_deploy_diff_report_failure_is_not_fatal(app_dir, settings, fs, recorder):
    plane = ControlPlane(diff_status=500)

    diff = deploy_agent(
        ["http://tsuru.example.com", "fake-token", "app1", "ls"],
        settings,
        fs=fs,
        executor=recorder,
        transport=plane.transport,
    )

    assert diff.content == "diff"
    assert plane.paths[-1] == "/apps/app1/diff"


@pytest.mark.parametrize("argv", [
    [],
    ["http://tsuru.example.com", "fake-token", "app1"],
    ["http://tsuru.example.com", "fake-token", "app1", "ls", "deploy", "extra"],
])
def test_deploy_args_arity(argv):
    with pytest.raises(ConfigurationError):
        DeployArgs.from_argv(argv)


def test_deploy_args_legacy_flag():
    args = DeployArgs.from_argv(["http://x", "t", "app1", "ls", "deploy"])

    assert args.legacy_flag == "deploy"
    assert args.command == "ls"


def test_deploy_latin1_diff_still_succeeds(app_dir, settings, fs, recorder):
    (app_dir / "diff").write_bytes(b"-print('caf\xe9')\n")
    plane = ControlPlane()

    diff = deploy_agent(
        ["http://tsuru.example.com", "fake-token", "app1", "ls"],
        settings,
        fs=fs,
        executor=recorder,
        transport=plane.transport,
    )

    assert diff.is_first_deploy is False
    assert plane.diff_bodies == ["-print('caf\ufffd')\n"]
