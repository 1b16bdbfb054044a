"""
Test Command Line Module
========================

Tests for argument parsing and the one-shot CLI modes.
"""

import pytest
import yaml
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

import main


@pytest.fixture
def settings_path(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({
        "actions": {"on_message": [{"contains": "question", "response": "Ask away"}]}
    }))
    return path


class TestParseArgs:
    def test_defaults(self):
        args = main.parse_args([])
        assert not args.web
        assert args.test is None
        assert args.verbose == 0

    def test_modes_exclusive(self):
        with pytest.raises(SystemExit):
            main.parse_args(["--web", "--setup"])

    def test_test_mode_with_chat_mode(self):
        args = main.parse_args(["--test", "hi there", "client", "-vv"])
        assert args.test == ["hi there", "client"]
        assert args.verbose == 2


class TestMain:
    def test_test_message(self, settings_path, capsys):
        assert main.main(["-s", str(settings_path), "--test", "I have a question"]) == 0
        out = capsys.readouterr().out
        assert "Trigger: question" in out
        assert "Ask away" in out

    def test_test_message_no_match(self, settings_path, capsys):
        assert main.main(["-s", str(settings_path), "--test", "questionable"]) == 0
        assert "No action matched" in capsys.readouterr().out

    def test_invalid_chat_mode(self, settings_path):
        assert main.main(["-s", str(settings_path), "--test", "hi", "whisper"]) == 1

    def test_invalid_settings(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("nmae: typo\n")
        assert main.main(["-s", str(path), "--test", "hi"]) == 1

    def test_setup(self, tmp_path):
        path = tmp_path / "conf" / "settings.yaml"
        assert main.main(["-s", str(path), "--setup"]) == 0
        assert path.exists()
        assert main.main(["-s", str(path), "--setup"]) == 1
