"""Master key generation and parsing."""
import binascii
import re
import secrets
from typing import Optional

from .errors import ConfigurationInvalid

MASTER_KEY_BYTES = 32
_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def generate_master_key() -> str:
    """Return a fresh 256-bit master key as 64 lowercase hex characters."""
    return secrets.token_bytes(MASTER_KEY_BYTES).hex()


def parse_master_key(value: Optional[str]) -> bytes:
    """Decode a 64 hex character master key into its 32 raw bytes.

    Raises:
        ConfigurationInvalid: key is absent, has the wrong length or is not hex.
    """
    if not value:
        raise ConfigurationInvalid("Master key must be set (64 hex characters)")
    value = value.strip()
    if not _HEX_KEY_RE.match(value):
        # Never echo the value itself
        raise ConfigurationInvalid(
            f"Master key must be 32 bytes (64 hex characters). Got len={len(value)}"
        )
    return binascii.unhexlify(value)
