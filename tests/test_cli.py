"""Tests for the roottensor command."""

import json
import logging

import httpx
import pytest
from click.testing import CliRunner

from roottensor import cli
from roottensor.llm import OllamaProvider


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ROOTTENSOR_BASE_URL", raising=False)
    monkeypatch.delenv("ROOTTENSOR_MODEL", raising=False)


@pytest.fixture
def server(monkeypatch):
    """Route the CLI's provider to a mock handler; returns the request log."""
    state: dict = {"status": 200, "body": b"", "requests": []}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        return httpx.Response(state["status"], content=state["body"])

    def from_config(cls, config, transport=None):
        return OllamaProvider(config.base_url, config.model, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli.OllamaProvider, "from_config", classmethod(from_config))
    return state


class TestCLI:
    def test_buffered_reply(self, server):
        server["body"] = b'{"message":{"content":"hello from mock"}}'

        result = CliRunner().invoke(cli.main, ["--no-stream", "Hi"])

        assert result.exit_code == 0, result.output
        assert "hello from mock" in result.output
        payload = json.loads(server["requests"][0].content)
        assert payload["stream"] is False
        assert payload["messages"] == [{"role": "user", "content": "Hi"}]

    def test_streamed_reply(self, server):
        server["body"] = b'{"content":"Hel"}\n{"content":"lo"}\n{"done":true}\n'

        result = CliRunner().invoke(cli.main, ["Hi"])

        assert result.exit_code == 0, result.output
        assert "Hello" in result.output
        assert len(server["requests"]) == 1
        assert json.loads(server["requests"][0].content)["stream"] is True

    def test_options_reach_payload(self, server):
        server["body"] = b'{"message":{"content":"ok"}}'

        result = CliRunner().invoke(cli.main, [
            "--no-stream", "--model", "llama3", "--system", "be brief",
            "--temperature", "0.5", "--max-tokens", "64", "Hi",
        ])

        assert result.exit_code == 0, result.output
        payload = json.loads(server["requests"][0].content)
        assert payload["model"] == "llama3"
        assert payload["messages"][0] == {"role": "system", "content": "be brief"}
        assert payload["options"] == {"temperature": 0.5, "num_predict": 64}

    def test_server_error_exit_code(self, server):
        server["status"] = 503

        result = CliRunner().invoke(cli.main, ["--no-stream", "Hi"])

        assert result.exit_code == 1
        assert "503" in result.output

    def test_missing_config_file(self, server, tmp_path):
        result = CliRunner().invoke(cli.main, ["--config", str(tmp_path / "nope.yaml"), "Hi"])

        assert result.exit_code == 2
        assert server["requests"] == []

    def test_base_url_option(self, server):
        server["body"] = b'{"message":{"content":"ok"}}'

        result = CliRunner().invoke(cli.main, ["--no-stream", "--base-url", "http://gpu-box:9000", "Hi"])

        assert result.exit_code == 0, result.output
        assert server["requests"][0].url.host == "gpu-box"
        assert server["requests"][0].url.port == 9000

    def test_logging_level_from_config(self, server, tmp_path, monkeypatch):
        server["body"] = b'{"message":{"content":"ok"}}'
        (tmp_path / "roottensor.yaml").write_text("logging:\n  level: info\n")
        levels: list[int] = []
        monkeypatch.setattr(cli.logging, "basicConfig", lambda **kw: levels.append(kw["level"]))

        result = CliRunner().invoke(cli.main, ["--no-stream", "Hi"])

        assert result.exit_code == 0, result.output
        assert levels == [logging.INFO]
