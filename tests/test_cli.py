"""Tests for the command-line front end."""

import io
import zipfile

import pytest
import requests.exceptions
import responses

from polyglot_agent.cli import main
from tests.fixtures import HANDSHAKE_DOC, LOCAL_DOC_URL, RELAY_URL, REMOTE_DOC_URL


class TestMain:

    @responses.activate
    def test_writes_zip_bundle(self, tmp_path, capsys):
        responses.add(responses.GET, LOCAL_DOC_URL, body=HANDSHAKE_DOC, content_type="text/markdown")
        output = tmp_path / "out" / "bundle.zip"

        code = main([LOCAL_DOC_URL, "--output", str(output), "--list"])

        assert code == 0
        with zipfile.ZipFile(io.BytesIO(output.read_bytes())) as zf:
            assert "handshaking-packets.ts" in zf.namelist()
        out = capsys.readouterr().out
        assert "files written to" in out
        assert "Task started" in out
        assert "tsconfig.json" in out

    @responses.activate
    def test_dump_model(self, tmp_path, capsys):
        responses.add(responses.GET, LOCAL_DOC_URL, body=HANDSHAKE_DOC, content_type="text/markdown")

        code = main([LOCAL_DOC_URL, "--output", str(tmp_path / "b.zip"), "--dump-model"])

        assert code == 0
        out = capsys.readouterr().out
        assert '"Handshaking"' in out
        assert '"direction": "ClientToServer"' in out

    @responses.activate
    def test_invalid_url_exits_before_fetch(self, capsys):
        code = main(["not a url"])

        assert code == 1
        assert "[Input]" in capsys.readouterr().out
        assert len(responses.calls) == 0

    @responses.activate
    def test_bad_numeric_setting_reported_as_input_error(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("POLYGLOT_PACE_SECONDS", "soon")

        code = main([LOCAL_DOC_URL, "--output", str(tmp_path / "b.zip")])

        assert code == 1
        out = capsys.readouterr().out
        assert "[Input] POLYGLOT_PACE_SECONDS must be a number" in out
        assert len(responses.calls) == 0

    def test_missing_url_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_examples(self, capsys):
        assert main(["--examples"]) == 0
        assert "https://wiki.vg/Protocol" in capsys.readouterr().out

    @responses.activate
    def test_strict_fetch_failure_returns_error(self, tmp_path, capsys):
        responses.add(responses.GET, RELAY_URL, body=requests.exceptions.ConnectionError())
        output = tmp_path / "never.zip"

        code = main([
            REMOTE_DOC_URL, "--relay", RELAY_URL,
            "--no-sample-fallback", "--output", str(output),
        ])

        assert code == 1
        assert "[ERROR]" in capsys.readouterr().out
        assert not output.exists()

    @responses.activate
    def test_fetch_failure_falls_back_by_default(self, tmp_path, capsys):
        responses.add(responses.GET, RELAY_URL, body=requests.exceptions.ConnectionError())
        output = tmp_path / "sample.zip"

        code = main([REMOTE_DOC_URL, "--relay", RELAY_URL, "--output", str(output)])

        assert code == 0
        assert output.exists()
        assert "[WARNING]" in capsys.readouterr().out
