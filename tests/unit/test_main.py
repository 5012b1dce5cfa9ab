"""
Unit tests for the main module — composition root and CLI.

Runs the real commands against temporary files; nothing leaves tmp_path.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import structlog

from jks_truststore.adapters.jks_codec import JksTrustStoreDecoder
from jks_truststore.main import configure_structlog, main
from jks_truststore.railway import ResultAssertions


class TestConfigureStructlog:
    """Verify structlog configuration function."""

    def test_configure_structlog_sets_log_level(self) -> None:
        configure_structlog("WARNING")
        assert structlog.get_logger() is not None

    def test_configure_structlog_invalid_level_falls_back(self) -> None:
        """
        GIVEN an invalid log_level string
        WHEN configure_structlog is called
        THEN it falls back to INFO (no crash).
        """
        configure_structlog("NONEXISTENT")
        assert structlog.get_logger() is not None


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, pem_a: str, pem_b: str) -> Path:
    """Two PEM files plus a clean environment rooted in tmp_path."""
    for name in ("LOG_LEVEL", "TRUSTSTORE__PASSWORD", "TRUSTSTORE__CERTIFICATE_TYPE", "STATE__PATH"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.pem").write_text(pem_a, encoding="ascii")
    (tmp_path / "b.pem").write_text(pem_b, encoding="ascii")
    return tmp_path


def _stdout_json(capsys: pytest.CaptureFixture[str]) -> dict:
    return json.loads(capsys.readouterr().out)


class TestCli:
    def test_create_writes_state_and_jks(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """
        GIVEN two PEM files
        WHEN `create --cert a.pem --cert b.pem --output store.jks` runs
        THEN exit code is 0, stdout has id/timestamp, state and .jks are written.
        """
        code = main(["--state", "state.json", "create", "--cert", "a.pem", "--cert", "b.pem", "--output", "store.jks"])

        assert code == 0
        out = _stdout_json(capsys)
        state = json.loads((workspace / "state.json").read_text(encoding="utf-8"))
        assert out == {"id": state["id"], "timestamp": state["timestamp"]}
        store = ResultAssertions.assert_success(
            JksTrustStoreDecoder().decode((workspace / "store.jks").read_bytes())
        )
        assert store.aliases == ["0", "1"]

    def test_create_accepts_utf8_bundle_file(
        self, workspace: Path, capsys: pytest.CaptureFixture[str], pem_a: str,
    ) -> None:
        """
        GIVEN a CA bundle file with UTF-8 comment lines around a PEM block
        WHEN `create --cert bundle.pem` runs
        THEN exit code is 0 and the store holds that one certificate.
        """
        (workspace / "bundle.pem").write_text(f"# Issuer: CN=Főtanúsítvány\n{pem_a}", encoding="utf-8")

        code = main(["--state", "state.json", "create", "--cert", "bundle.pem", "--output", "store.jks"])

        assert code == 0
        store = ResultAssertions.assert_success(
            JksTrustStoreDecoder().decode((workspace / "store.jks").read_bytes())
        )
        assert store.aliases == ["0"]

    def test_read_reproduces_create(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["--state", "state.json", "create", "--cert", "a.pem", "--cert", "b.pem"])
        created = _stdout_json(capsys)

        code = main(["--state", "state.json", "read", "--cert", "a.pem", "--cert", "b.pem"])

        assert code == 0
        assert _stdout_json(capsys) == created

    def test_delete_clears_state(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["--state", "state.json", "create", "--cert", "a.pem"])
        capsys.readouterr()

        code = main(["--state", "state.json", "delete"])

        assert code == 0
        assert _stdout_json(capsys) == {"deleted": True}
        assert not (workspace / "state.json").exists()

    def test_inspect_lists_entries(
        self, workspace: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("TRUSTSTORE__PASSWORD", "changeit")
        main(["--state", "state.json", "create", "--cert", "a.pem", "--cert", "b.pem", "--output", "store.jks"])
        capsys.readouterr()

        code = main(["inspect", "store.jks"])

        assert code == 0
        listing = _stdout_json(capsys)
        assert [e["alias"] for e in listing["entries"]] == ["0", "1"]
        assert listing["entries"][0]["subject"] == "CN=Test Root A"
        assert listing["verified"] is True

    def test_inspect_with_wrong_password_fails(
        self, workspace: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("TRUSTSTORE__PASSWORD", "changeit")
        main(["--state", "state.json", "create", "--cert", "a.pem", "--output", "store.jks"])
        monkeypatch.setenv("TRUSTSTORE__PASSWORD", "wrong")
        capsys.readouterr()

        code = main(["inspect", "store.jks"])

        assert code == 1
        assert '"INTEGRITY_ERROR"' in capsys.readouterr().err

    def test_missing_certificate_file_fails(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--state", "state.json", "create", "--cert", "missing.pem"])

        assert code == 1
        assert '"DECODE_ERROR"' in capsys.readouterr().err
        assert not (workspace / "state.json").exists()

    def test_read_without_state_fails(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = main(["--state", "state.json", "read", "--cert", "a.pem"])

        assert code == 1
        assert '"NOT_FOUND"' in capsys.readouterr().err

    def test_invalid_configuration_exits_2(
        self, workspace: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str],
    ) -> None:
        """
        GIVEN LOG_LEVEL=LOUD in the environment
        WHEN any command runs
        THEN exit code is 2 and stderr reports CONFIGURATION_ERROR as JSON.
        """
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        assert main(["delete"]) == 2

        report = json.loads(capsys.readouterr().err)
        assert report["error"] == "CONFIGURATION_ERROR"
        assert "log_level" in report["message"]
