"""
Encrypted backup export and restore.
"""

from .codec import (
    KDF_ITERATIONS,
    NONCE_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    BackupCodec,
    BackupDecryptionError,
    BackupEncryptionError,
    BackupError,
    InvalidBackupError,
    InvalidPasswordError,
    UnsupportedBackupVersionError,
    default_backup_name,
    derive_key,
    read_backup_file,
    write_backup_file,
)
from .restore import BackupService, RestoreSummary, build_payload, restore_payload

__all__ = [
    "BackupCodec",
    "BackupService",
    "RestoreSummary",
    "build_payload",
    "restore_payload",
    "derive_key",
    "read_backup_file",
    "write_backup_file",
    "default_backup_name",
    "SALT_LENGTH",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "KDF_ITERATIONS",
    # Errors
    "BackupError",
    "InvalidPasswordError",
    "BackupEncryptionError",
    "BackupDecryptionError",
    "InvalidBackupError",
    "UnsupportedBackupVersionError",
]
