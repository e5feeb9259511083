"""Decryption of stored database passwords.

Passwords in connection strings may be stored encrypted with AES-256-GCM and
base64 encoded (nonce + ciphertext). The key comes from the
``STAGELOAD_SECRET_KEY`` environment variable (base64, 32 bytes) or from a key
file under ``~/.stageload/``.
"""

import base64
import binascii
import logging
import os
import re
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..constants import SECRET_KEY_DIR, SECRET_KEY_ENV, SECRET_NONCE_SIZE

logger = logging.getLogger(__name__)

BASE64_PATTERN = re.compile(r'^[A-Za-z0-9+/]+={0,2}$')


def is_base64_encoded(value: str) -> bool:
    """Check whether a value looks like standard base64.

    Args:
        value: Candidate string

    Returns:
        True if the value has base64 length and alphabet and decodes cleanly
    """
    if not value or len(value) % 4 != 0 or not BASE64_PATTERN.match(value):
        return False

    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


class PasswordDecrypter:
    """Encrypt and decrypt password material with AES-256-GCM."""

    def __init__(self, key: Optional[bytes] = None, key_dir: Optional[Path] = None):
        """Initialize decrypter.

        Args:
            key: Explicit 32-byte key. Takes precedence over the environment
                and the key file.
            key_dir: Directory holding the ``.key`` file.
                Defaults to ~/.stageload/
        """
        if key_dir is None:
            key_dir = Path.home() / SECRET_KEY_DIR

        self.key_dir = key_dir
        self._key = key if key is not None else self._load_key()

        if len(self._key) != 32:
            raise ValueError(f"Secret key must be 32 bytes, got {len(self._key)}")

    def _load_key(self) -> bytes:
        """Load key from environment or key file.

        Raises:
            FileNotFoundError: If neither source provides a key
        """
        env_key = os.environ.get(SECRET_KEY_ENV)
        if env_key:
            return base64.b64decode(env_key)

        key_file = self.key_dir / ".key"
        if key_file.exists():
            return key_file.read_bytes()

        raise FileNotFoundError(
            f"No secret key configured\n"
            f"  Hint: Set {SECRET_KEY_ENV} (base64, 32 bytes) or create {key_file}"
        )

    @staticmethod
    def generate_key() -> bytes:
        """Generate a new 256-bit key."""
        return AESGCM.generate_key(bit_length=256)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a password into the stored base64 form."""
        aesgcm = AESGCM(self._key)
        nonce = os.urandom(SECRET_NONCE_SIZE)
        ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, encoded: str) -> str:
        """Decrypt a stored base64 password.

        Raises:
            ValueError: If the payload is malformed or fails authentication
        """
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Password is not valid base64: {e}") from e

        if len(data) <= SECRET_NONCE_SIZE:
            raise ValueError("Encrypted password payload is too short")

        nonce = data[:SECRET_NONCE_SIZE]
        ciphertext = data[SECRET_NONCE_SIZE:]

        try:
            plaintext = AESGCM(self._key).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise ValueError("Failed to decrypt password (wrong key or tampered data)") from e

        return plaintext.decode("utf-8")


def resolve_password(password: Optional[str], decrypter: Optional[PasswordDecrypter] = None) -> Optional[str]:
    """Return the usable password for a possibly encrypted value.

    Values that do not look base64 encoded are returned unchanged. When
    decryption fails the raw value is kept, since a plain password can
    happen to be valid base64.
    """
    if not password or not is_base64_encoded(password):
        return password

    try:
        if decrypter is None:
            decrypter = PasswordDecrypter()
        return decrypter.decrypt(password)
    except (ValueError, FileNotFoundError) as e:
        logger.warning(f"Password looks encrypted but could not be decrypted, using it as-is: {e}")
        return password
