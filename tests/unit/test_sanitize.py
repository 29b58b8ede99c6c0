"""Tests for utils/sanitize.py."""

from grcmap.utils.sanitize import MAX_ERROR_LENGTH, sanitize_error


class TestSanitizeError:
    def test_redacts_anthropic_key(self):
        result = sanitize_error("401 | invalid key sk-ant-api03-abcDEF123_xyz")
        assert "sk-ant" not in result
        assert "[REDACTED_KEY]" in result

    def test_redacts_openai_key(self):
        result = sanitize_error("Incorrect API key provided: sk-proj-abcdefghijklmnopqrstuvwxyz")
        assert "abcdefghijklmnop" not in result

    def test_redacts_bearer_token(self):
        assert sanitize_error("Authorization failed for Bearer abc.def") == "Authorization failed for Bearer [REDACTED]"

    def test_redacts_home_path(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/auditor")
        monkeypatch.delenv("USERPROFILE", raising=False)
        assert sanitize_error("cannot read /home/auditor/keys.txt") == "cannot read [USER_HOME]/keys.txt"

    def test_truncates_long_messages(self):
        result = sanitize_error("x" * (MAX_ERROR_LENGTH + 50))
        assert len(result) == MAX_ERROR_LENGTH + 3
        assert result.endswith("...")

    def test_empty_message(self):
        assert sanitize_error("") == ""

    def test_plain_message_unchanged(self):
        assert sanitize_error("503 | service unavailable") == "503 | service unavailable"
