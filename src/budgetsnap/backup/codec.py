"""
Password-encrypted backup container.

Container layout (all lengths in bytes):

    salt (32) | nonce (12) | ciphertext (n) | tag (16)

The key is derived from the password with PBKDF2-HMAC-SHA256 and a fresh
random salt; the payload JSON is sealed with AES-256-GCM under a fresh
random nonce. Decryption verifies the tag before any plaintext is
returned, so a wrong password and a damaged file fail the same way.
"""

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..schemas.backup import SUPPORTED_FORMAT_VERSIONS, BackupPayload

logger = logging.getLogger(__name__)

SALT_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32
KDF_ITERATIONS = 100_000

MIN_CONTAINER_LENGTH = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH


class BackupError(Exception):
    """Base class for backup failures. Carries a message fit for end users."""

    user_message = "The backup operation failed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class InvalidPasswordError(BackupError):
    user_message = "Invalid password"


class BackupEncryptionError(BackupError):
    user_message = "Failed to encrypt data"


class BackupDecryptionError(BackupError):
    user_message = "Failed to decrypt data. Check the password and try again"


class InvalidBackupError(BackupError):
    user_message = "The backup file is invalid or corrupted"


class UnsupportedBackupVersionError(InvalidBackupError):
    user_message = "The backup was created by an unsupported version"

    def __init__(self, version: object):
        super().__init__(f"Unsupported backup format version: {version!r}")
        self.version = version


def derive_key(password: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    """
    Derive the AES-256 key for a password and salt.

    Args:
        password: User password (UTF-8 encoded before derivation)
        salt: Random salt stored in the container header
        iterations: PBKDF2 iteration count

    Returns:
        32-byte key
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def _check_password(password: str) -> None:
    if not isinstance(password, str) or not password:
        raise InvalidPasswordError("Password must be a non-empty string")


class BackupCodec:
    """
    Serializes, encrypts and decrypts backup payloads.

    Stateless apart from the KDF iteration count; one instance can be
    shared, but creating one per call is just as cheap.
    """

    def __init__(self, iterations: int = KDF_ITERATIONS):
        self.iterations = iterations

    # Serialization

    def encode_payload(self, payload: BackupPayload) -> bytes:
        """Canonical UTF-8 JSON for a payload."""
        return json.dumps(payload.to_dict(), ensure_ascii=False, separators=(",", ":")).encode(
            "utf-8"
        )

    def decode_payload(self, data: bytes) -> BackupPayload:
        """
        Parse payload JSON and check its format version.

        Raises:
            InvalidBackupError: JSON is malformed or fields are missing
            UnsupportedBackupVersionError: format_version is not known
        """
        try:
            raw = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidBackupError(f"Backup payload is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise InvalidBackupError("Backup payload must be a JSON object")

        version = raw.get("format_version")
        if version not in SUPPORTED_FORMAT_VERSIONS:
            raise UnsupportedBackupVersionError(version)

        try:
            return BackupPayload.from_dict(raw)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise InvalidBackupError(f"Backup payload is malformed: {e}") from e

    # Encryption

    def encrypt(self, plaintext: bytes, password: str) -> bytes:
        """Seal plaintext into a container. Fresh salt and nonce per call."""
        _check_password(password)

        salt = os.urandom(SALT_LENGTH)
        nonce = os.urandom(NONCE_LENGTH)
        key = derive_key(password, salt, self.iterations)

        try:
            # AESGCM appends the 16-byte tag to the ciphertext
            sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        except (ValueError, OverflowError) as e:
            raise BackupEncryptionError(str(e)) from e

        return salt + nonce + sealed

    def decrypt(self, container: bytes, password: str) -> bytes:
        """
        Open a container.

        Raises:
            InvalidPasswordError: Password is empty
            InvalidBackupError: Container is too short to hold a header and tag
            BackupDecryptionError: Authentication failed (wrong password or
                damaged data)
        """
        _check_password(password)

        if len(container) < MIN_CONTAINER_LENGTH:
            raise InvalidBackupError(
                f"Backup is {len(container)} bytes, shorter than the "
                f"{MIN_CONTAINER_LENGTH}-byte minimum"
            )

        salt = container[:SALT_LENGTH]
        nonce = container[SALT_LENGTH : SALT_LENGTH + NONCE_LENGTH]
        sealed = container[SALT_LENGTH + NONCE_LENGTH :]

        key = derive_key(password, salt, self.iterations)
        try:
            return AESGCM(key).decrypt(nonce, sealed, None)
        except InvalidTag as e:
            raise BackupDecryptionError("Authentication tag mismatch") from e

    # Combined

    def export_payload(self, payload: BackupPayload, password: str) -> bytes:
        """Serialize and encrypt a payload."""
        return self.encrypt(self.encode_payload(payload), password)

    def import_payload(self, container: bytes, password: str) -> BackupPayload:
        """Decrypt and deserialize a container."""
        return self.decode_payload(self.decrypt(container, password))


# Per-destination locks so export and import never interleave on one file
_path_locks: dict[Path, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _path_locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _path_locks[key] = lock
        return lock


def write_backup_file(path: Path | str, container: bytes) -> Path:
    """
    Atomically write a container to disk.

    The data goes to a temporary file in the same directory which then
    replaces the destination, so readers never see a partial backup.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with _lock_for(path):
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(container)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    logger.info("Wrote backup %s (%d bytes)", path, len(container))
    return path


def read_backup_file(path: Path | str) -> bytes:
    """Read a container from disk."""
    path = Path(path)
    with _lock_for(path):
        return path.read_bytes()


def default_backup_name(extension: str = ".bsbackup", now: Optional[datetime] = None) -> str:
    """File name for a new backup, e.g. budgetsnap-20240301-120000.bsbackup."""
    now = now or datetime.now(timezone.utc)
    return f"budgetsnap-{now.strftime('%Y%m%d-%H%M%S')}{extension}"
