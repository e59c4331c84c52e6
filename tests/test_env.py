# Tests for environment variable helpers
import os
import warnings

from mcpcli.utils.env import ENV_VAR_PATTERN, child_environment, expand_env_vars


def test_expand_var_in_header_value(monkeypatch):
    """Test expanding a token reference inside a header value."""
    monkeypatch.setenv("API_TOKEN", "abc123")

    assert expand_env_vars("Bearer ${API_TOKEN}") == "Bearer abc123"


def test_expand_multiple_vars(monkeypatch):
    monkeypatch.setenv("MCP_HOST", "localhost")
    monkeypatch.setenv("MCP_PORT", "8000")

    assert expand_env_vars("http://${MCP_HOST}:${MCP_PORT}/mcp") == "http://localhost:8000/mcp"


def test_missing_var_kept_with_warning(monkeypatch):
    """Test that missing variables are preserved with warning."""
    monkeypatch.delenv("MISSING_VAR", raising=False)

    with warnings.catch_warnings(record=True) as w:
        warnings.simplefilter("always")
        result = expand_env_vars("--token=${MISSING_VAR}")

    assert result == "--token=${MISSING_VAR}"
    assert len(w) == 1
    assert "MISSING_VAR" in str(w[0].message)


def test_plain_string_unchanged():
    assert expand_env_vars("uvx mcp-server-time") == "uvx mcp-server-time"
    assert expand_env_vars("") == ""


def test_pattern_ignores_lowercase_names():
    assert ENV_VAR_PATTERN.search("${lowercase}") is None
    assert ENV_VAR_PATTERN.search("${_PRIVATE_1}").group(1) == "_PRIVATE_1"


class TestChildEnvironment:
    """Tests for child_environment snapshots."""

    def test_inherits_parent_environment(self, monkeypatch):
        monkeypatch.setenv("PARENT_ONLY", "yes")

        env = child_environment()

        assert env["PARENT_ONLY"] == "yes"
        assert env == dict(os.environ)

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("TZ_NAME", "UTC")

        env = child_environment({"TZ_NAME": "Europe/Paris", "EXTRA": "1"})

        assert env["TZ_NAME"] == "Europe/Paris"
        assert env["EXTRA"] == "1"

    def test_snapshot_is_isolated(self, monkeypatch):
        """Mutating the snapshot must not leak into os.environ."""
        monkeypatch.delenv("LEAK_CHECK", raising=False)

        env = child_environment()
        env["LEAK_CHECK"] = "1"
        child_environment({"LEAK_CHECK": "2"})

        assert "LEAK_CHECK" not in os.environ
        assert env is not os.environ
