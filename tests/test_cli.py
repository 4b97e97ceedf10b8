"""Tests for the anthos-hub CLI."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from anthos_hub.cli.commands import app
from anthos_hub.config import Config
from anthos_hub.errors import ExclusivityConflictError
from anthos_hub.hub.types import Membership
from anthos_hub.k8s.reconciler import ReconcileAction, ReconcileResult

runner = CliRunner()


@pytest.fixture
def config():
    """Configuration with a project and membership set."""
    return Config(hub={"project": "proj1"}, membership={"membership_id": "cluster-a"})


@pytest.fixture
def orchestrator():
    """Orchestrator mock installed behind from_config()."""
    instance = MagicMock()
    with patch("anthos_hub.cli.commands.MembershipLifecycleOrchestrator") as mock_cls:
        mock_cls.from_config.return_value.__enter__.return_value = instance
        yield instance


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("anthos_hub.cli.commands.setup_logging"):
        yield


@patch("anthos_hub.cli.commands.save_default_config")
@patch("anthos_hub.cli.commands.load_config")
def test_cli_onboard(mock_load, mock_save, tmp_path: Path):
    """Test the onboard command."""
    mock_load.return_value = Config()
    mock_save.return_value = tmp_path / "config.json"

    result = runner.invoke(app, ["onboard"])
    assert result.exit_code == 0
    assert "Config created at:" in result.stdout


@patch("anthos_hub.cli.commands.load_config")
def test_cli_status(mock_load, config):
    """Test the status command shows the resolved configuration."""
    mock_load.return_value = config

    result = runner.invoke(app, ["status"])
    assert result.exit_code == 0
    assert "anthos-hub Configuration" in result.stdout
    assert "proj1" in result.stdout
    assert "cluster-a" in result.stdout


@patch("anthos_hub.cli.commands.load_config")
def test_cli_register(mock_load, config, orchestrator):
    """Test the register command runs the workflow and prints the result."""
    mock_load.return_value = config
    orchestrator.register.return_value = Membership.model_validate(
        {
            "name": "projects/proj1/locations/global/memberships/cluster-a",
            "externalId": "uuid-1234",
            "state": {"code": "READY"},
        }
    )

    result = runner.invoke(app, ["register", "--description", "prod"])

    assert result.exit_code == 0
    assert "Registered:" in result.stdout
    assert "READY" in result.stdout
    args, kwargs = orchestrator.register.call_args
    assert args == ("cluster-a",)
    assert kwargs["description"] == "prod"


@patch("anthos_hub.cli.commands.load_config")
def test_cli_register_requires_project(mock_load, orchestrator):
    """Test a missing project is reported without calling the Hub."""
    mock_load.return_value = Config(membership={"membership_id": "cluster-a"})

    result = runner.invoke(app, ["register"])

    assert result.exit_code == 1
    assert "No project configured" in result.stdout
    orchestrator.register.assert_not_called()


@patch("anthos_hub.cli.commands.load_config")
def test_cli_register_failure(mock_load, config, orchestrator):
    """Test workflow errors are printed with their step trail."""
    mock_load.return_value = config
    orchestrator.register.side_effect = ExclusivityConflictError("owned by hub proj0", code=6).with_step(
        "validating exclusivity"
    )

    result = runner.invoke(app, ["register"])

    assert result.exit_code == 1
    assert "validating exclusivity: owned by hub proj0" in result.stdout


@patch("anthos_hub.cli.commands.load_config")
def test_cli_unregister_uses_configured_artifact_policy(mock_load, config, orchestrator):
    """Test artifact removal defaults to the configured policy."""
    mock_load.return_value = config

    result = runner.invoke(app, ["unregister", "-m", "cluster-b"])

    assert result.exit_code == 0
    assert "Unregistered:" in result.stdout
    args, kwargs = orchestrator.unregister.call_args
    assert args == ("cluster-b",)
    assert kwargs["delete_artifacts"] is True


@patch("anthos_hub.cli.commands.load_config")
def test_cli_unregister_keep_artifacts(mock_load, config, orchestrator):
    """Test the flag overrides the configured policy."""
    mock_load.return_value = config

    result = runner.invoke(app, ["unregister", "--keep-artifacts"])

    assert result.exit_code == 0
    assert orchestrator.unregister.call_args.kwargs["delete_artifacts"] is False


@patch("anthos_hub.cli.commands.load_config")
def test_cli_connect_agent(mock_load, config, orchestrator, tmp_path: Path):
    """Test connect-agent passes options and prints a result table."""
    key_file = tmp_path / "key.json"
    key_file.write_text("sa-key", encoding="utf-8")
    config.connect_agent.service_account_key_file = str(key_file)
    mock_load.return_value = config
    orchestrator.install_connect_agent.return_value = [
        ReconcileResult("Namespace", "gke-connect", None, ReconcileAction.CREATED),
        ReconcileResult("Secret", "creds-gcp", "gke-connect", ReconcileAction.UPDATED),
    ]

    result = runner.invoke(app, ["connect-agent", "--version", "v2", "--upgrade"])

    assert result.exit_code == 0
    assert "created" in result.stdout
    assert "creds-gcp" in result.stdout
    kwargs = orchestrator.install_connect_agent.call_args.kwargs
    assert kwargs["service_account_key"] == "sa-key"
    assert kwargs["options"].version == "v2"
    assert kwargs["options"].is_upgrade is True
