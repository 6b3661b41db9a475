"""
Cypherpunk GPG Backend

Drives the gpg command line against a private, throw-away keyring so
the user's own keyring is never touched. Remailer keys are imported
once per backend instance; each layer is then encrypted with
``gpg -a -e -R <key>`` (hidden recipient).
"""

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import BackendError


logger = logging.getLogger(__name__)

KEYRING_NAME = "keyring.gpg"


class GPGBackend:
    """
    Encryption backend using the command-line gpg.

    Usage:
        backend = GPGBackend()
        backend.import_keys([Path("pubring.asc").read_bytes()])
        armored = backend.encrypt(b"::\\nAnon-To: ...", "remailer@dizum.com")
    """

    scheme = "PGP"

    def __init__(
        self,
        binary: str = "gpg",
        temp_dir: Optional[Path] = None,
        timeout: float = 60.0,
        quiet: bool = True,
    ):
        """
        Initialize backend.

        Args:
            binary: gpg executable name or path
            temp_dir: Parent for the private keyring directory (default: system temp)
            timeout: Seconds allowed per gpg invocation
            quiet: Pass -q to gpg
        """
        self.binary = binary
        self.timeout = timeout
        self.quiet = quiet
        self._workdir = tempfile.TemporaryDirectory(
            prefix="cypherpunk-", dir=str(temp_dir) if temp_dir else None,
        )
        self.keyring = Path(self._workdir.name) / KEYRING_NAME

    def close(self) -> None:
        """Remove the private keyring."""
        self._workdir.cleanup()

    def __enter__(self) -> 'GPGBackend':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _base_args(self) -> List[str]:
        args = [
            self.binary,
            "--batch",
            "--no-default-keyring",
            f"--keyring={self.keyring}",
            "--homedir", self._workdir.name,
        ]
        if self.quiet:
            args.append("-q")
        return args

    def _run(self, args: List[str], data: bytes) -> bytes:
        """Run gpg feeding ``data`` on stdin and return stdout."""
        logger.debug(f"Running {' '.join(args)}")
        try:
            completed = subprocess.run(
                args,
                input=data,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise BackendError(f"GPG executable not found: {self.binary}")
        except subprocess.TimeoutExpired:
            raise BackendError(f"GPG did not finish within {self.timeout} seconds")

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            raise BackendError(
                f"GPG exited with code {completed.returncode}: {stderr or 'no error output'}"
            )
        return completed.stdout

    def import_key(self, key: bytes) -> None:
        """
        Import one (armored or binary) public key into the private keyring.

        Raises:
            BackendError: If gpg rejects the key
        """
        self._run(self._base_args() + ["--import", "--yes"], key)

    def import_keys(self, keys: Iterable[bytes]) -> None:
        """Import each key in turn."""
        count = 0
        for key in keys:
            self.import_key(key)
            count += 1
        logger.info(f"Imported {count} key block(s) into {self.keyring}")

    def encrypt(self, plaintext: bytes, public_key: str) -> bytes:
        """
        Encrypt ``plaintext`` to the key identified by ``public_key``
        (key id, fingerprint or e-mail address).
        """
        if not isinstance(public_key, str) or not public_key:
            raise BackendError(f"GPG backend needs a key identifier, got {public_key!r}")
        args = self._base_args() + [
            "--always-trust",
            "-a",
            "-e",
            "-R", public_key,
        ]
        ciphertext = self._run(args, plaintext)
        if not ciphertext:
            raise BackendError("GPG produced no output")
        return ciphertext
