import json

from rich.console import Console

from ai_agent.dispatcher import DispatchState, PlanDispatcher
from ai_agent.plan_parser import parse_plan
from ai_agent.session import Session


class FakeLLM:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def generate_plan(self, *, command, language="hindi"):
        self.calls.append((command, language))
        return self.response


def _plan(*actions, **context):
    return json.dumps({"type": "composite", "actions": list(actions), "context": context})


def _dispatcher(tmp_path, response=""):
    session = Session(cwd=str(tmp_path))
    return PlanDispatcher(session, FakeLLM(response), console=Console(quiet=True))


def test_first_failure_aborts_remaining_actions(tmp_path):
    dispatcher = _dispatcher(tmp_path)
    plan = parse_plan(
        _plan(
            {"type": "file-operation", "action": "write", "path": "a.txt", "content": "1"},
            {"type": "file-operation", "action": "read", "path": "missing.txt"},
            {"type": "file-operation", "action": "write", "path": "c.txt", "content": "3"},
        )
    )
    report = dispatcher.execute(plan)

    assert report.success is False
    assert report.completed == 1
    assert "missing.txt" in report.error
    assert (tmp_path / "a.txt").exists()
    assert not (tmp_path / "c.txt").exists()
    assert dispatcher.state is DispatchState.IDLE


def test_returned_failure_does_not_abort(tmp_path):
    dispatcher = _dispatcher(tmp_path)
    plan = parse_plan(
        _plan(
            {"type": "process-operation", "action": "stop", "options": {"name": "ghost"}},
            {"type": "database-operation", "dbType": "sqlite", "action": "query"},
            {"type": "file-operation", "action": "write", "path": "done.txt", "content": "ok"},
        )
    )
    report = dispatcher.execute(plan)

    assert report.success is True
    assert report.completed == 3
    assert report.results[1]["implemented"] is False
    assert (tmp_path / "done.txt").read_text(encoding="utf-8") == "ok"


def test_unknown_action_is_skipped(tmp_path):
    dispatcher = _dispatcher(tmp_path)
    plan = parse_plan(
        _plan(
            {"type": "teleport-operation"},
            {"type": "file-operation", "action": "mkdir", "path": "after"},
        )
    )
    report = dispatcher.execute(plan)
    assert report.results[0]["skipped"] is True
    assert (tmp_path / "after").is_dir()


def test_handle_parses_model_output_and_records_history(tmp_path):
    response = "```json\n" + _plan(
        {"type": "file-operation", "action": "write", "path": "notes.md", "content": "# hi"},
        description="write notes",
    ) + "\n```"
    dispatcher = _dispatcher(tmp_path, response)
    dispatcher.session.config.language = "english"

    report = dispatcher.handle("notes file banao")

    assert report.success is True
    assert dispatcher.llm.calls == [("notes file banao", "english")]
    assert (tmp_path / "notes.md").read_text(encoding="utf-8") == "# hi"
    entry = dispatcher.session.history.entries[-1]
    assert entry.command == "notes file banao"
    assert entry.type == "composite"
    assert entry.description == "write notes"


def test_history_is_recorded_even_if_execution_fails(tmp_path):
    response = _plan({"type": "file-operation", "action": "read", "path": "missing.txt"})
    dispatcher = _dispatcher(tmp_path, response)
    report = dispatcher.handle("missing file padho")
    assert report.success is False
    assert len(dispatcher.session.history) == 1


def test_unparseable_response_is_reported_without_history(tmp_path):
    dispatcher = _dispatcher(tmp_path, "Sorry, I cannot help with that.")
    report = dispatcher.handle("kuch karo")
    assert report.plan is None
    assert report.error
    assert len(dispatcher.session.history) == 0


def test_missing_model_client_is_reported(tmp_path):
    dispatcher = PlanDispatcher(Session(cwd=str(tmp_path)), None, console=Console(quiet=True))
    report = dispatcher.handle("kuch karo")
    assert report.success is False
    assert "No model client" in report.error
