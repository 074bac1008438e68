"""Secure memory handling utilities.

Key material used during a signing call is held in mutable buffers that are
zeroed as soon as the call finishes:
- Secure zeroization of byte arrays
- A zeroing buffer wrapper and a temporary-key context manager
- Constant-time byte comparison for MAC checks
"""

import ctypes
from contextlib import contextmanager
from typing import Generator


def secure_zero(data: bytearray) -> None:
    """Securely zero out a bytearray.

    Uses ctypes.memset to overwrite memory, which is less likely
    to be optimized away than simple assignment.

    Args:
        data: The bytearray to zero. Must be a mutable bytearray, not bytes.

    Note:
        Python's garbage collector may still leave copies in memory
        (for example inside a parsed key object).
    """
    if not isinstance(data, bytearray):
        raise TypeError("secure_zero requires a bytearray, not bytes")

    if len(data) == 0:
        return

    buffer_type = ctypes.c_char * len(data)
    buffer = buffer_type.from_buffer(data)
    ctypes.memset(ctypes.addressof(buffer), 0, len(data))


class SecureBytes:
    """A bytearray wrapper that zeros memory on clear, exit or deletion.

    Example:
        with SecureBytes(key_material) as secure_key:
            result = sign(bytes(secure_key), payload)
        # Key is zeroed here
    """

    def __init__(self, data: bytes | bytearray):
        """Initialize with sensitive data.

        Args:
            data: The sensitive data to protect. Copied to an internal buffer.
        """
        self._data = bytearray(data)
        self._cleared = False

    @property
    def cleared(self) -> bool:
        return self._cleared

    def __bytes__(self) -> bytes:
        """Convert to bytes (creates a copy - use sparingly)."""
        if self._cleared:
            raise ValueError("SecureBytes has been cleared")
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        """Securely clear the data."""
        if not self._cleared:
            secure_zero(self._data)
            self._cleared = True

    def __enter__(self) -> "SecureBytes":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.clear()

    def __del__(self) -> None:
        self.clear()


@contextmanager
def temporary_key(key_bytes: bytes) -> Generator[bytearray, None, None]:
    """Context manager for temporary key usage.

    Yields a mutable bytearray copy of the key that is
    securely zeroed when the context exits.

    Example:
        with temporary_key(derived_key) as key:
            tag = mac(key, payload)
        # key is zeroed here
    """
    key_copy = bytearray(key_bytes)
    try:
        yield key_copy
    finally:
        secure_zero(key_copy)


def constant_time_equals(a: bytes | bytearray, b: bytes | bytearray) -> bool:
    """Compare two byte sequences without short-circuiting on content.

    Unequal lengths return False immediately; this leaks only the length.
    Otherwise every byte pair is XORed into an accumulator so the running
    time does not depend on where the first difference is.

    Args:
        a: First byte sequence
        b: Second byte sequence

    Returns:
        True only if both sequences are identical (including both empty)
    """
    if len(a) != len(b):
        return False

    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0
