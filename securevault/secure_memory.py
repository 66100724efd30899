"""
Zeroizable buffers for key material and passphrases.

Python may still hold transient immutable copies (``bytes`` objects handed to
the crypto libraries, interned ``str`` passphrases). ``SecretBuffer`` bounds
the lifetime of the copies this package owns: they live in one mutable
``bytearray`` that is overwritten with zeros on ``wipe()``.
"""

import ctypes
from typing import Union

SecretLike = Union["SecretBuffer", bytearray, bytes, str]


def wipe(data: bytearray) -> None:
    """Overwrite a bytearray with zero bytes in place."""
    length = len(data)
    if not length:
        return
    ctypes.memset((ctypes.c_char * length).from_buffer(data), 0, length)


class SecretBuffer:
    """
    Single-owner byte buffer that is zeroed when released.

    Use as a context manager so the buffer is wiped on every exit path:

        with SecretBuffer(key_bytes) as key:
            cipher.seal(key, nonce, data)
    """

    __slots__ = ("_data", "_wiped")

    def __init__(self, data: Union[bytes, bytearray, memoryview]):
        self._data = bytearray(data)
        self._wiped = False

    @classmethod
    def take(cls, secret: SecretLike) -> "SecretBuffer":
        """
        Take ownership of a secret.

        A ``bytearray`` is copied and the caller's buffer zeroed, so the
        value is moved rather than duplicated. ``SecretBuffer`` instances are
        returned as-is. ``bytes`` and ``str`` are immutable and can only be
        copied.
        """
        if isinstance(secret, SecretBuffer):
            return secret
        if isinstance(secret, bytearray):
            buffer = cls(secret)
            wipe(secret)
            return buffer
        if isinstance(secret, str):
            return cls(secret.encode("utf-8"))
        if isinstance(secret, (bytes, memoryview)):
            return cls(secret)
        raise TypeError(f"unsupported secret type: {type(secret).__name__}")

    def view(self) -> bytearray:
        """Return the live buffer. Callers must not keep a reference."""
        if self._wiped:
            raise ValueError("secret buffer has been wiped")
        return self._data

    def wipe(self) -> None:
        if not self._wiped:
            wipe(self._data)
            self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    def __enter__(self) -> "SecretBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __len__(self) -> int:
        return len(self._data)

    def __del__(self):
        if hasattr(self, "_wiped"):
            self.wipe()

    def __repr__(self) -> str:
        return f"<SecretBuffer len={len(self._data)} wiped={self._wiped}>"
