from datetime import timezone

import pytest

from ai_agent.errors import HistoryLoadError
from ai_agent.history import History


def test_history_persists_to_yaml(tmp_path):
    path = tmp_path / "history.yaml"
    history = History(path=path)
    history.record("folder banao", "file", "create a folder")
    history.record("server chalao", "server", "start the dev server")

    reloaded = History.load(path)
    assert len(reloaded) == 2
    assert reloaded.entries[0].command == "folder banao"
    assert reloaded.entries[1].type == "server"
    assert reloaded.entries[0].timestamp.tzinfo is not None
    assert reloaded.entries[0].timestamp.utcoffset() == timezone.utc.utcoffset(None)


def test_recent_is_most_recent_first():
    history = History()
    for idx in range(7):
        history.record(f"cmd {idx}", "system", "")
    assert [e.command for e in history.recent(5)] == ["cmd 6", "cmd 5", "cmd 4", "cmd 3", "cmd 2"]
    assert history.recent(0) == []


def test_in_memory_history_writes_nothing(tmp_path):
    history = History()
    history.record("x", "file", "")
    assert list(tmp_path.iterdir()) == []
    assert History.load(tmp_path / "missing.yaml").entries == []


def test_corrupt_history_file_starts_empty(tmp_path):
    path = tmp_path / "history.yaml"
    for text in (
        "- a\n",
        "history: [unclosed\n",
        "history:\n  - just a string\n",
        "history:\n  - command: x\n    timestamp: yesterday-ish\n",
    ):
        path.write_text(text, encoding="utf-8")
        with pytest.raises(HistoryLoadError):
            History.load(path)
        history = History.load_or_empty(path)
        assert len(history) == 0
        assert history.path == path

    history.record("folder banao", "file", "")
    assert len(History.load(path)) == 1
