from __future__ import annotations

import email
import io
from email import policy
from typing import Dict

import pytest

from cpunk.main import EXIT_ERROR, EXIT_OK, EXIT_PARTIAL, run
from cypherpunk import __version__
from cypherpunk.crypto import KeyPair, open_sealed
from cypherpunk.onion import Envelope, parse_encrypted_block
from cypherpunk.packet import parse_native


@pytest.fixture
def keys() -> Dict[str, KeyPair]:
    return {name: KeyPair.generate() for name in ("alpha", "omega")}


@pytest.fixture
def workspace(tmp_path, keys):
    directory = tmp_path / "remailers.toml"
    directory.write_text(
        "".join(
            f'[[remailer]]\nname = "{name}"\naddress = "{name}@example.org"\n'
            f'key = "hex:{pair.public_bytes.hex()}"\n\n'
            for name, pair in keys.items()
        )
        + '[[remailer]]\nname = "broken"\naddress = "broken@example.org"\nkey = "hex:00ff"\n'
    )
    message = tmp_path / "message.txt"
    message.write_bytes(b"Meet me at the usual place.\n")
    return tmp_path


def base_args(workspace, message=None) -> list:
    return [
        message or str(workspace / "message.txt"),
        "--config", str(workspace / "absent.toml"),
        "-d", str(workspace / "remailers.toml"),
        "--backend", "sealed",
        "-t", "alice@example.org",
    ]


def peel(envelope: Envelope, pair: KeyPair) -> Envelope:
    _, ciphertext = parse_encrypted_block(envelope.body)
    return Envelope.from_bytes(open_sealed(ciphertext, pair))


def test_native_to_stdout(workspace, keys, capsys) -> None:
    argv = base_args(workspace) + ["-c", "alpha", "omega", "-H", "Subject: plans"]
    assert run(argv) == EXIT_OK

    out = capsys.readouterr().out
    assert out.startswith("::\nAnon-To: alpha@example.org\n\n::\nEncrypted: X25519\n\n")

    outer = parse_native(out)
    middle = peel(outer, keys["alpha"])
    assert middle.recipient_directive == "omega@example.org"
    final = peel(middle, keys["omega"])
    assert final.recipient_directive == "alice@example.org"
    assert final.visible_headers == (("Subject", "plans"),)
    assert final.body == b"Meet me at the usual place.\n"


def test_message_from_stdin(workspace, keys, capsys, monkeypatch) -> None:
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(b"from stdin\n")))
    assert run(base_args(workspace, message="-") + ["-c", "omega"]) == EXIT_OK

    outer = parse_native(capsys.readouterr().out)
    assert peel(outer, keys["omega"]).body == b"from stdin\n"


def test_redundant_eml_files(workspace, capsys) -> None:
    out_dir = workspace / "out"
    argv = base_args(workspace) + [
        "-c", "alpha", "omega",
        "-r", "3",
        "-f", "eml",
        "-o", str(out_dir),
        "-j", "2",
    ]
    assert run(argv) == EXIT_OK

    files = sorted(p.name for p in out_dir.iterdir())
    assert files == ["copy-01.eml", "copy-02.eml", "copy-03.eml"]
    parsed = email.message_from_string((out_dir / "copy-02.eml").read_text(), policy=policy.default)
    assert parsed["To"] == "alpha@example.org"
    assert "copy-01.eml" in capsys.readouterr().out


def test_mailto_shortcut(workspace, capsys) -> None:
    argv = base_args(workspace) + ["-m", "-c", "omega"]
    assert run(argv) == EXIT_OK
    assert capsys.readouterr().out.startswith("mailto:omega@example.org?body=%3A%3A%0AEncrypted")


def test_failed_copies_exit_partial(workspace, capsys) -> None:
    argv = base_args(workspace) + ["-r", "2", "-c", "broken"]
    assert run(argv) == EXIT_PARTIAL

    err = capsys.readouterr().err
    assert "Copy 1 failed" in err
    assert "Copy 2 failed" in err
    assert "broken" in err


def test_overlong_chain_is_reported(workspace, capsys) -> None:
    argv = base_args(workspace) + ["-c"] + ["*"] * 9
    assert run(argv) == EXIT_PARTIAL
    assert "at most 8 allowed" in capsys.readouterr().err


def test_unknown_remailer_is_reported(workspace, capsys) -> None:
    argv = base_args(workspace) + ["-c", "nobody"]
    assert run(argv) == EXIT_PARTIAL
    assert "Unknown remailer: 'nobody'" in capsys.readouterr().err


def test_missing_directory(workspace, capsys) -> None:
    argv = [
        "--config", str(workspace / "absent.toml"),
        "--backend", "sealed",
        "-t", "alice@example.org",
        str(workspace / "message.txt"),
    ]
    assert run(argv) == EXIT_ERROR
    assert "no remailer directory" in capsys.readouterr().err


def test_bad_config_file(workspace, capsys) -> None:
    config = workspace / "config.toml"
    config.write_text("[chain]\nredundancy = 0\n")
    argv = ["--config", str(config), "-t", "alice@example.org", str(workspace / "message.txt")]
    assert run(argv) == EXIT_ERROR
    assert "Configuration error" in capsys.readouterr().err


def test_missing_message_file(workspace, capsys) -> None:
    argv = base_args(workspace, message=str(workspace / "nope.txt")) + ["-c", "omega"]
    assert run(argv) == EXIT_ERROR


def test_bad_header_is_a_usage_error(workspace) -> None:
    with pytest.raises(SystemExit) as info:
        run(base_args(workspace) + ["-H", "no colon here"])
    assert info.value.code == EXIT_ERROR


def test_version(capsys) -> None:
    with pytest.raises(SystemExit) as info:
        run(["--version"])
    assert info.value.code == 0
    assert __version__ in capsys.readouterr().out
