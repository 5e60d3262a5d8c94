import re

import pytest
from click.testing import CliRunner

from notevault.adapters.storage.local import LocalBlobStorage
from notevault.cli import cli
from notevault.domain.auth import JwtValidator
from notevault.domain.blobs.store import BlobStoreConfig, EncryptedBlobStore

KEY_HEX = "11" * 32


@pytest.fixture
def runner(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # no stray .env
    monkeypatch.setenv("NOTEVAULT_MASTER_KEY", KEY_HEX)
    monkeypatch.setenv("JWT_SECRET", "cli-secret")
    return CliRunner()


def test_keygen(runner):
    result = runner.invoke(cli, ["keygen"])

    assert result.exit_code == 0
    assert re.fullmatch(r"[0-9a-f]{64}\n", result.output)


def test_issue_token(runner):
    result = runner.invoke(cli, ["issue-token", "--sub", "user-42", "--expires-in", "120"])

    assert result.exit_code == 0
    claims = JwtValidator(secret="cli-secret").validate_token(result.output.strip())
    assert claims["sub"] == "user-42"


def test_issue_token_requires_valid_config(runner, monkeypatch):
    monkeypatch.setenv("NOTEVAULT_MASTER_KEY", "short")

    result = runner.invoke(cli, ["issue-token", "--sub", "user-42"])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_decrypt_to_file(runner, tmp_path):
    storage = LocalBlobStorage(tmp_path / "uploads")
    store = EncryptedBlobStore(BlobStoreConfig(master_key=bytes.fromhex(KEY_HEX)), storage)
    blob = store.encrypt(b"recovered bytes")
    out = tmp_path / "out.bin"

    result = runner.invoke(cli, ["decrypt", blob.locator, "--iv", blob.iv, "--tag", blob.tag, "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"recovered bytes"


def test_decrypt_missing_blob(runner, tmp_path):
    (tmp_path / "uploads").mkdir()
    locator = str(tmp_path / "uploads" / "nothing.encrypted")

    result = runner.invoke(cli, ["decrypt", locator, "--iv", "00" * 16])

    assert result.exit_code == 1
    assert "Blob not found" in result.output


def test_decrypt_does_not_create_directories(runner, tmp_path):
    locator = str(tmp_path / "no" / "such" / "dir" / "blob.encrypted")

    result = runner.invoke(cli, ["decrypt", locator, "--iv", "00" * 16])

    assert result.exit_code == 1
    assert "does not exist" in result.output
    assert not (tmp_path / "no").exists()
