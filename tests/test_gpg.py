from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from cypherpunk.crypto import GPGBackend
from cypherpunk.crypto import gpg as gpg_module
from cypherpunk.errors import BackendError


class FakeRun:
    """Stands in for subprocess.run and records every gpg invocation."""

    def __init__(self, stdout: bytes = b"-----BEGIN PGP MESSAGE-----\n...\n", returncode: int = 0,
                 stderr: bytes = b"", exc: Exception = None) -> None:
        self.stdout = stdout
        self.returncode = returncode
        self.stderr = stderr
        self.exc = exc
        self.calls = []

    def __call__(self, args, input=None, **kwargs):
        self.calls.append((list(args), input, kwargs))
        if self.exc is not None:
            raise self.exc
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def backend(tmp_path):
    gpg = GPGBackend(binary="gpg-test", temp_dir=tmp_path, timeout=7.5)
    yield gpg
    gpg.close()


def test_encrypt_command_line(monkeypatch, backend) -> None:
    run = FakeRun()
    monkeypatch.setattr(gpg_module.subprocess, "run", run)

    ciphertext = backend.encrypt(b"::\nAnon-To: x@example.org\n\nhi", "remailer@dizum.com")

    assert ciphertext == run.stdout
    args, data, kwargs = run.calls[0]
    assert args[0] == "gpg-test"
    assert "--batch" in args
    assert "--no-default-keyring" in args
    assert f"--keyring={backend.keyring}" in args
    assert "-q" in args
    assert args[-5:] == ["--always-trust", "-a", "-e", "-R", "remailer@dizum.com"]
    assert data == b"::\nAnon-To: x@example.org\n\nhi"
    assert kwargs["timeout"] == 7.5


def test_keyring_is_private_and_removed(tmp_path) -> None:
    with GPGBackend(temp_dir=tmp_path) as backend:
        keyring_dir = backend.keyring.parent
        assert keyring_dir.parent == tmp_path
        assert keyring_dir.exists()
    assert not keyring_dir.exists()


def test_import_keys(monkeypatch, backend) -> None:
    run = FakeRun(stdout=b"")
    monkeypatch.setattr(gpg_module.subprocess, "run", run)

    backend.import_keys([b"KEY ONE", b"KEY TWO"])

    assert [data for _, data, _ in run.calls] == [b"KEY ONE", b"KEY TWO"]
    assert all(args[-2:] == ["--import", "--yes"] for args, _, _ in run.calls)


def test_not_quiet(monkeypatch, tmp_path) -> None:
    run = FakeRun()
    monkeypatch.setattr(gpg_module.subprocess, "run", run)
    with GPGBackend(temp_dir=tmp_path, quiet=False) as backend:
        backend.encrypt(b"x", "key")
    assert "-q" not in run.calls[0][0]


@pytest.mark.parametrize("run", [
    FakeRun(returncode=2, stderr=b"gpg: remailer@dizum.com: skipped: No public key"),
    FakeRun(stdout=b""),
    FakeRun(exc=FileNotFoundError("gpg-test")),
    FakeRun(exc=subprocess.TimeoutExpired(["gpg-test"], 7.5)),
])
def test_failures_map_to_backend_error(monkeypatch, backend, run) -> None:
    monkeypatch.setattr(gpg_module.subprocess, "run", run)
    with pytest.raises(BackendError):
        backend.encrypt(b"x", "remailer@dizum.com")


def test_nonzero_exit_message_includes_stderr(monkeypatch, backend) -> None:
    monkeypatch.setattr(gpg_module.subprocess, "run", FakeRun(returncode=2, stderr=b"No public key"))
    with pytest.raises(BackendError, match="No public key"):
        backend.encrypt(b"x", "remailer@dizum.com")


@pytest.mark.parametrize("key", [b"\x01" * 32, "", None])
def test_rejects_non_identifier_keys(backend, key) -> None:
    with pytest.raises(BackendError):
        backend.encrypt(b"x", key)


def test_missing_binary_for_real(tmp_path) -> None:
    with GPGBackend(binary=str(Path(tmp_path) / "no-such-gpg"), temp_dir=tmp_path) as backend:
        with pytest.raises(BackendError, match="not found"):
            backend.encrypt(b"x", "someone@example.org")
