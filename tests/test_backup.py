"""Tests for the encrypted backup codec."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from budgetsnap.backup import (
    KDF_ITERATIONS,
    NONCE_LENGTH,
    SALT_LENGTH,
    TAG_LENGTH,
    BackupCodec,
    BackupDecryptionError,
    BackupError,
    InvalidBackupError,
    InvalidPasswordError,
    UnsupportedBackupVersionError,
    default_backup_name,
    derive_key,
    read_backup_file,
    write_backup_file,
)
from budgetsnap.schemas import BackupPayload, Budget, Category, StoredTransaction

PASSWORD = "correct horse battery staple"


@pytest.fixture
def codec():
    """Codec with a low iteration count to keep tests fast."""
    return BackupCodec(iterations=1_000)


@pytest.fixture
def payload():
    """Payload with one record of each kind."""
    groceries = Category(name="Groceries", color_hex="#34C759", icon="cart", is_default=True)
    return BackupPayload.from_records(
        transactions=[
            StoredTransaction(
                date=datetime(2024, 3, 1),
                amount=Decimal("82.14"),
                merchant="Whole Foods Market",
                description="Whole Foods Market $82.14 03/01/2024",
                category_id=groceries.id,
                original_text="Whole Foods Market $82.14 03/01/2024",
                screenshot_hash="d" * 64,
            ),
            StoredTransaction(
                date=datetime(2024, 3, 2, 8, 15),
                amount=Decimal("2500.00"),
                merchant="Payroll – ACME Café",
                is_income=True,
                is_reviewed=True,
            ),
        ],
        budgets=[Budget(month_year="2024-03", limit=Decimal("400.00"), category_id=groceries.id)],
        categories=[groceries],
        exported_at=datetime(2024, 3, 31, 18, 0, tzinfo=timezone.utc),
    )


class TestSerialization:
    """Tests for canonical payload JSON."""

    def test_field_order(self, codec, payload):
        """Top-level keys come in a fixed order."""
        data = json.loads(codec.encode_payload(payload))
        assert list(data) == ["format_version", "exported_at", "transactions", "budgets", "categories"]

    def test_decimals_and_dates_are_strings(self, codec, payload):
        """Amounts keep their exact text; timestamps are ISO-8601."""
        data = json.loads(codec.encode_payload(payload))

        assert data["transactions"][0]["amount"] == "82.14"
        assert data["transactions"][0]["date"] == "2024-03-01T00:00:00"
        assert data["exported_at"] == "2024-03-31T18:00:00+00:00"

    def test_encoding_is_deterministic(self, codec, payload):
        """The same payload always serializes to the same bytes."""
        assert codec.encode_payload(payload) == codec.encode_payload(payload)

    def test_decode_round_trip(self, codec, payload):
        """Decoding restores every field."""
        assert codec.decode_payload(codec.encode_payload(payload)) == payload

    def test_unsupported_version(self, codec, payload):
        """Unknown format versions are rejected."""
        data = payload.to_dict()
        data["format_version"] = "9.9"

        with pytest.raises(UnsupportedBackupVersionError) as exc_info:
            codec.decode_payload(json.dumps(data).encode())
        assert exc_info.value.version == "9.9"

    def test_malformed_json(self, codec):
        """Garbage is an invalid backup."""
        with pytest.raises(InvalidBackupError):
            codec.decode_payload(b"not json")

    def test_missing_fields(self, codec):
        """A known version with missing fields is an invalid backup."""
        with pytest.raises(InvalidBackupError):
            codec.decode_payload(json.dumps({"format_version": "1.0"}).encode())


class TestEncryption:
    """Tests for the encrypted container."""

    def test_round_trip(self, codec, payload):
        """decrypt(encrypt(P)) == P field for field."""
        container = codec.export_payload(payload, PASSWORD)
        assert codec.import_payload(container, PASSWORD) == payload

    def test_empty_payload_round_trip(self, codec):
        """A backup of an empty store round-trips too."""
        empty = BackupPayload(exported_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        assert codec.import_payload(codec.export_payload(empty, PASSWORD), PASSWORD) == empty

    def test_container_layout(self, codec, payload):
        """salt | nonce | ciphertext | tag."""
        plaintext = codec.encode_payload(payload)
        container = codec.encrypt(plaintext, PASSWORD)

        assert len(container) == SALT_LENGTH + NONCE_LENGTH + len(plaintext) + TAG_LENGTH

    def test_fresh_salt_and_nonce(self, codec, payload):
        """Two exports of the same data differ."""
        first = codec.export_payload(payload, PASSWORD)
        second = codec.export_payload(payload, PASSWORD)

        assert first[:SALT_LENGTH] != second[:SALT_LENGTH]
        assert first != second

    def test_wrong_password(self, codec, payload):
        """A wrong password fails without returning data."""
        container = codec.export_payload(payload, PASSWORD)

        with pytest.raises(BackupDecryptionError):
            codec.import_payload(container, PASSWORD + "!")

    def test_flipped_byte_anywhere(self, codec, payload):
        """Tampering with salt, nonce, ciphertext or tag is detected."""
        container = codec.export_payload(payload, PASSWORD)
        positions = [
            0,
            SALT_LENGTH - 1,
            SALT_LENGTH,
            SALT_LENGTH + NONCE_LENGTH - 1,
            SALT_LENGTH + NONCE_LENGTH,
            len(container) // 2,
            len(container) - TAG_LENGTH,
            len(container) - 1,
        ]

        for position in positions:
            tampered = bytearray(container)
            tampered[position] ^= 0x01
            with pytest.raises(BackupDecryptionError):
                codec.decrypt(bytes(tampered), PASSWORD)

    def test_truncated_container(self, codec):
        """Containers too short for header and tag are invalid."""
        with pytest.raises(InvalidBackupError):
            codec.decrypt(b"\x00" * (SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH - 1), PASSWORD)

    def test_empty_password(self, codec, payload):
        """Empty passwords are refused both ways."""
        with pytest.raises(InvalidPasswordError):
            codec.export_payload(payload, "")
        with pytest.raises(InvalidPasswordError):
            codec.decrypt(b"\x00" * 100, "")

    def test_unsupported_version_inside_container(self, codec, payload):
        """Version is checked after successful decryption."""
        data = payload.to_dict()
        data["format_version"] = "2.0"
        container = codec.encrypt(json.dumps(data).encode(), PASSWORD)

        with pytest.raises(UnsupportedBackupVersionError):
            codec.import_payload(container, PASSWORD)

    def test_errors_have_user_messages(self):
        """Every backup error carries a message for end users."""
        for error_class in (
            InvalidPasswordError,
            BackupDecryptionError,
            InvalidBackupError,
        ):
            error = error_class()
            assert isinstance(error, BackupError)
            assert error.user_message
        assert UnsupportedBackupVersionError("3.0").user_message

    def test_default_iterations(self):
        """Production codec uses 100,000 PBKDF2 iterations."""
        assert KDF_ITERATIONS == 100_000
        assert BackupCodec().iterations == KDF_ITERATIONS


class TestKeyDerivation:
    """Tests for PBKDF2 key derivation."""

    def test_key_length_and_determinism(self):
        """Same password and salt give the same 32-byte key."""
        salt = b"s" * SALT_LENGTH
        key = derive_key(PASSWORD, salt, iterations=1_000)

        assert len(key) == 32
        assert key == derive_key(PASSWORD, salt, iterations=1_000)
        assert key != derive_key(PASSWORD, b"t" * SALT_LENGTH, iterations=1_000)


class TestBackupFiles:
    """Tests for backup file I/O."""

    def test_write_and_read(self, tmp_path):
        """Written bytes are read back unchanged."""
        path = tmp_path / "nested" / "backup.bsbackup"
        write_backup_file(path, b"container")

        assert read_backup_file(path) == b"container"

    def test_write_replaces_atomically(self, tmp_path):
        """Overwriting leaves no temporary files behind."""
        path = tmp_path / "backup.bsbackup"
        write_backup_file(path, b"first")
        write_backup_file(path, b"second")

        assert read_backup_file(path) == b"second"
        assert [p.name for p in tmp_path.iterdir()] == ["backup.bsbackup"]

    def test_default_backup_name(self):
        """Names are timestamped and use the configured extension."""
        name = default_backup_name(".bsbackup", now=datetime(2024, 3, 1, 12, 0, 5))
        assert name == "budgetsnap-20240301-120005.bsbackup"
