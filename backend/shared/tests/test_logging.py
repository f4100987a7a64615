import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _serialize_enums, bind_room_context, clear_room_context, setup_logging


class _Status(Enum):
    PLAYING = "playing"
    FINISHED = "finished"


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "sessions"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "sessions")

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_no_file_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            assert setup_logging(log_dir=tmp_path / "sessions") is None
        assert not (tmp_path / "sessions").exists()

    def test_writes_to_nested_directory(self, tmp_path):
        log_dir = tmp_path / "nested" / "dir"
        log_path = setup_logging(log_dir=str(log_dir))

        structlog.get_logger("test.nested").info("room created", room_code="1234")

        assert log_path is not None
        content = log_path.read_text()
        assert "room created" in content
        assert "1234" in content

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()

    def test_json_mode_carries_room_context_and_enum_values(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "sessions")

        bind_room_context(room_code="4821", game="trivia", player_id="alice")
        structlog.get_logger("test.json").info("room closed", status=_Status.FINISHED, scores={"alice": 2})
        clear_room_context()

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "room closed"
        assert parsed["room_code"] == "4821"
        assert parsed["game"] == "trivia"
        assert parsed["player_id"] == "alice"
        assert parsed["status"] == "finished"
        assert parsed["scores"] == {"alice": 2}


class TestSerializeEnums:
    def test_replaces_enum_with_value(self):
        result = _serialize_enums(None, "", {"status": _Status.PLAYING, "event": "hello"})
        assert result == {"status": "playing", "event": "hello"}

    def test_replaces_enum_inside_dict_value(self):
        result = _serialize_enums(None, "", {"data": {"status": _Status.FINISHED, "count": 3}})
        assert result["data"] == {"status": "finished", "count": 3}

    def test_leaves_non_enum_values_unchanged(self):
        event_dict = {"count": 42, "name": "test"}
        assert _serialize_enums(None, "", event_dict) == {"count": 42, "name": "test"}


class TestRoomContext:
    def test_bind_and_clear(self):
        bind_room_context(room_code="1234", player_id="bob")
        assert structlog.contextvars.get_contextvars() == {"room_code": "1234", "player_id": "bob"}
        clear_room_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown room context keys"):
            bind_room_context(room_code="1234", seat="host")
        assert structlog.contextvars.get_contextvars() == {}
