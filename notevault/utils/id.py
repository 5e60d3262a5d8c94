import secrets
import time


def uuid7() -> str:
    """Generate a time-ordered UUIDv7 string.

    Layout: 48-bit unix ms timestamp, version 7, 12 random bits,
    variant 0b10, 62 random bits.
    """
    ms = time.time_ns() // 1_000_000

    value = (ms & 0xFFFFFFFFFFFF) << 80
    value |= 0x7 << 76
    value |= secrets.randbits(12) << 64
    value |= 0x2 << 62
    value |= secrets.randbits(62)

    h = f"{value:032x}"
    return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:]}"


def new_blob_name() -> str:
    """Storage-layer identifier for a new upload: ``<uuid7 hex>-<8 random hex>``.

    Sorts by creation time and contains no path separators.
    """
    return f"{uuid7().replace('-', '')}-{secrets.token_hex(4)}"
