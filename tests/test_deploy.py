import pytest

from ai_agent.config import AppConfig
from ai_agent.deploy import Deployer
from ai_agent.errors import ActionValidationError, ExternalCommandError, UnsupportedOperation
from ai_agent.models import DeployAction, DeployStep
from ai_agent.session import Session
from ai_agent.shell_runner import ShellRunner


def _deployer(tmp_path, strict=False):
    session = Session(config=AppConfig(strict_actions=strict), cwd=str(tmp_path))
    return Deployer(session, ShellRunner(session=session))


def test_deploy_runs_steps_in_order(tmp_path):
    action = DeployAction(
        platform="firebase",
        steps=[
            DeployStep(type="config", path="firebase.json", content='{"hosting": {}}'),
            DeployStep(type="build", command="echo built"),
            DeployStep(type="upload", command="echo uploaded"),
        ],
    )
    result = _deployer(tmp_path).execute(action)

    assert result["success"] is True
    assert result["output"].splitlines() == ["built", "uploaded"]
    assert (tmp_path / "firebase.json").read_text(encoding="utf-8") == '{"hosting": {}}'


def test_deploy_stops_at_failing_step(tmp_path):
    action = DeployAction(
        platform="heroku",
        steps=[DeployStep(type="build", command="exit 1"), DeployStep(type="invoke", command="touch pushed")],
    )
    with pytest.raises(ExternalCommandError):
        _deployer(tmp_path).execute(action)
    assert not (tmp_path / "pushed").exists()


def test_step_without_command_is_rejected(tmp_path):
    with pytest.raises(ActionValidationError):
        _deployer(tmp_path).execute(DeployAction(platform="netlify", steps=[DeployStep(type="build")]))


def test_unknown_step_skipped_unless_strict(tmp_path):
    action = DeployAction(platform="aws", steps=[DeployStep(type="celebrate", command="echo yay")])
    assert _deployer(tmp_path).execute(action)["output"] == ""
    with pytest.raises(UnsupportedOperation):
        _deployer(tmp_path, strict=True).execute(action)
