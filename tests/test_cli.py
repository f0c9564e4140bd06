"""Tests for the command-line interface."""

import json
from unittest.mock import patch

import pytest

from nutribot import cli
from nutribot.providers.completion_provider import CompletionServiceError, TextCompletionService


class FakeCompletionService(TextCompletionService):
    def __init__(self, response):
        self.response = response

    async def complete(self, prompt: str) -> str:
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


CHICKEN = {
    "food_name": "Chicken breast",
    "weight_grams": 200,
    "calories": 311,
    "protein_g": 62.0,
    "carbs_g": 0.0,
    "fat_g": 7.0,
    "confidence": "high",
}


def run_cli(argv, response):
    with patch.object(cli.GeminiCompletionService, "from_settings",
                      return_value=FakeCompletionService(response)):
        cli.main(argv)


class TestCli:
    """Tests for cli.main."""

    def test_single_text_output(self, capsys):
        """Test the chat-style reply for one food."""
        run_cli(["chicken breast", "--weight", "200"], json.dumps(CHICKEN))

        out = capsys.readouterr().out
        assert "Chicken breast (200g)" in out
        assert "311 kcal" in out

    def test_single_json_output(self, capsys):
        """Test JSON output for one food."""
        run_cli(["chicken breast", "--weight", "200", "--output", "json"], json.dumps(CHICKEN))

        body = json.loads(capsys.readouterr().out)
        assert body["is_valid"] is True
        assert body["confidence"] == "high"

    def test_message_json_output(self, capsys):
        """Test outcomes and analysis for a message."""
        response = json.dumps({"foods": [CHICKEN]})

        run_cli(["200g chicken breast", "--message", "--output", "json"], response)

        body = json.loads(capsys.readouterr().out)
        assert len(body["outcomes"]) == 1
        assert body["analysis"]["totals"]["calories"] == 311

    def test_message_text_output(self, capsys):
        """Test the Markdown analysis after per-food replies."""
        run_cli(["200g chicken breast", "--message"], json.dumps({"foods": [CHICKEN]}))

        out = capsys.readouterr().out
        assert "# Meal Analysis" in out

    def test_invalid_outcome_exits_zero(self, capsys):
        """Test that a rejection is a normal result."""
        run_cli(["chicken breast", "--weight", "200"], json.dumps(dict(CHICKEN, calories=330)))

        assert "calorie-macro mismatch" in capsys.readouterr().out

    def test_input_error_exit_code(self):
        """Test exit code 2 for a bad weight."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli(["chicken breast", "--weight", "-3"], json.dumps(CHICKEN))

        assert exc_info.value.code == 2

    def test_service_error_exit_code(self):
        """Test exit code 3 when the model call fails."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli(["chicken breast", "--weight", "200"], CompletionServiceError("AUTH_ERROR", "bad key"))

        assert exc_info.value.code == 3

    def test_missing_api_key_exit_code(self, monkeypatch):
        """Test exit code 3 when the provider cannot be created."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["chicken breast", "--weight", "200"])

        assert exc_info.value.code == 3

    def test_mode_required(self):
        """Test that --weight or --message must be given."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["chicken breast"])

        assert exc_info.value.code == 2

    def test_missing_config_file(self):
        """Test a nonexistent settings path."""
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["rice", "--weight", "100", "--config", "/nonexistent/extraction.yaml"])

        assert exc_info.value.code == 1
