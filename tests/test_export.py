"""
Environment Export Tests
========================
Pure mapping, environment adapter, rendered outputs and redaction.
"""

import os

from portcfg.export import (
    REDACTED,
    apply_environment,
    build_environment,
    dotenv_quote,
    mask_assignment,
    redact,
    render_env_file,
    render_shell_exports,
    summary_lines,
    write_env_file,
)
from portcfg.parser import QuoteMode, parse_config_content


class TestBuildEnvironment:
    """Test the pure key/value mapping."""

    def test_every_entry_in_file_order(self):
        config = parse_config_content("vllm: 15007\nmodel: llama3\nollama: 9999\n")
        assert list(build_environment(config).items()) == [
            ("vllm", "15007"),
            ("model", "llama3"),
            ("ollama", "9999"),
        ]

    def test_secret_exported_with_quotes_stripped(self):
        config = parse_config_content('nvidia_api_key: "abc123"\n', quotes=QuoteMode.ENCLOSING)
        assert build_environment(config) == {"nvidia_api_key": "abc123"}

    def test_file_wins_over_environment_by_default(self):
        config = parse_config_content("ollama: 15000\n")
        assert build_environment(config, {"ollama": "16000"}) == {"ollama": "15000"}

    def test_prefer_env_keeps_preseeded_value(self):
        config = parse_config_content("ollama: 15000\nvllm: 15007\n")
        env = build_environment(config, {"ollama": "16000"}, prefer_env=True)
        assert env == {"ollama": "16000", "vllm": "15007"}

    def test_does_not_touch_environment(self):
        config = parse_config_content("ollama: 15000\n")
        environ = {"other": "x"}
        build_environment(config, environ, prefer_env=True)
        assert environ == {"other": "x"}


class TestApplyEnvironment:
    """Test the boundary adapter."""

    def test_applies_to_given_mapping(self):
        environ = {"ollama": "1"}
        apply_environment({"ollama": "15000", "vllm": "15007"}, environ)
        assert environ == {"ollama": "15000", "vllm": "15007"}

    def test_defaults_to_process_environment(self, monkeypatch):
        monkeypatch.setenv("portcfg_test_port", "0")
        apply_environment({"portcfg_test_port": "15000"})
        assert os.environ["portcfg_test_port"] == "15000"

    def test_skips_invalid_names(self, caplog):
        environ = {}
        applied = apply_environment({"a=b": "15000", "ollama": "15001"}, environ)
        assert environ == {"ollama": "15001"}
        assert applied == {"ollama": "15001"}
        assert "not a valid environment variable name" in caplog.text


class TestRedaction:
    """Test that secrets never show their value."""

    def test_secret_set(self):
        assert redact("nvidia_api_key", "abc123", {"nvidia_api_key"}) == REDACTED

    def test_secret_empty(self):
        assert redact("hf_token", "", {"hf_token"}) == ""

    def test_non_secret_shown(self):
        assert redact("ollama", "15000", {"hf_token"}) == "15000"

    def test_mask_assignment(self):
        assert mask_assignment("hf_token", "abc") == "hf_token=<redacted>"

    def test_summary_hides_secret(self, registry):
        config = parse_config_content('ollama: 15000\nnvidia_api_key: "abc123"\nhf_token:\n')
        text = "\n".join(summary_lines(config, registry))
        assert "abc123" not in text
        assert "NVIDIA API Key: <set>" in text
        assert "Ollama: 15000" in text
        assert "HF Token: " in text

    def test_summary_hides_numeric_secret(self, registry):
        config = parse_config_content("ollama: 15000\nhf_token: 98765432\n")
        lines = summary_lines(config, registry)
        assert "98765432" not in "\n".join(lines)
        assert lines[lines.index("API Keys:") + 1] == "HF Token: <set>"

    def test_summary_lists_missing_keys(self, registry):
        config = parse_config_content("ollama: 15000\n")
        lines = summary_lines(config, registry)
        assert lines[-1].startswith("Not configured: ArangoDB")

    def test_summary_unknown_key_uses_key(self, registry):
        config = parse_config_content("custom_service: 15010\n")
        assert "custom_service: 15010" in summary_lines(config, registry)


class TestRendering:
    """Test the shell and dotenv outputs."""

    def test_shell_exports(self):
        text = render_shell_exports({"ollama": "15000", "nvidia_api_key": '"abc 123'})
        lines = [line for line in text.splitlines() if not line.startswith("#")]
        assert lines == ["export ollama=15000", "export nvidia_api_key='\"abc 123'"]

    def test_shell_skips_invalid_names(self, caplog):
        text = render_shell_exports({"bad key": "1", "ok": "2"})
        assert "bad key" not in text
        assert "export ok=2" in text
        assert "not a valid environment variable name" in caplog.text

    def test_dotenv_quote(self):
        assert dotenv_quote("15000") == "15000"
        assert dotenv_quote("http://localhost:15000") == "http://localhost:15000"
        assert dotenv_quote("two words") == "'two words'"
        assert dotenv_quote("it's") == '"it\'s"'
        assert dotenv_quote("") == ""

    def test_env_file_content(self, tmp_path):
        text = render_env_file({"ollama": "15000", "vllm": "15007"}, source=tmp_path / "port_config.txtpb")
        lines = text.splitlines()
        assert lines[0].startswith("# Generated by portcfg from ")
        assert lines[1:] == ["ollama=15000", "vllm=15007"]
        assert text.endswith("\n")

    def test_write_env_file_is_idempotent(self, tmp_path):
        target = tmp_path / "compose" / ".env"
        assert write_env_file(target, {"ollama": "15000"}) is True
        assert target.read_text().splitlines()[1:] == ["ollama=15000"]
        assert write_env_file(target, {"ollama": "15000"}) is False
        assert write_env_file(target, {"ollama": "15001"}) is True
