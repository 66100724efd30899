"""
Error taxonomy for the vault.

Every failure raised by this package is a ``VaultError`` tagged with an
``ErrorKind``. Each component raises only its own kinds:

    Derivation  DerivationFailure
    Cipher      AuthenticationFailure (reported by the session as FormatCorrupt)
    Codec       VaultNotFound, FormatCorrupt, VersionUnsupported, IOFailure
    Session     WrongPassphrase, VaultExists, SessionClosed
    Store       EntryNotFound, DuplicateEntry

``describe`` turns any of them into a short user-facing message. Messages
never say which part of the file or the key material caused a mismatch.
"""

import enum
from typing import Optional


class ErrorKind(enum.Enum):
    """Closed set of failure categories."""
    NOT_FOUND = "not_found"
    WRONG_PASSPHRASE = "wrong_passphrase"
    FORMAT_CORRUPT = "format_corrupt"
    VERSION_UNSUPPORTED = "version_unsupported"
    IO_FAILURE = "io_failure"
    DERIVATION_FAILURE = "derivation_failure"
    AUTHENTICATION_FAILURE = "authentication_failure"
    ALREADY_EXISTS = "already_exists"
    SESSION_CLOSED = "session_closed"
    ENTRY_NOT_FOUND = "entry_not_found"
    DUPLICATE_ENTRY = "duplicate_entry"


class VaultError(Exception):
    """Base class for all vault errors."""
    kind: ErrorKind


# Derivation

class DerivationFailure(VaultError):
    """Key derivation could not run (bad parameters or out of memory)."""
    kind = ErrorKind.DERIVATION_FAILURE


# Cipher

class AuthenticationFailure(VaultError):
    """Ciphertext did not authenticate. Carries no detail on purpose."""
    kind = ErrorKind.AUTHENTICATION_FAILURE

    def __init__(self) -> None:
        super().__init__("authentication failed")


# Codec

class VaultNotFound(VaultError):
    """No vault file exists at the given path."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, path: str):
        super().__init__(f"no vault at {path}")
        self.path = path


class FormatCorrupt(VaultError):
    """The vault file exists but cannot be parsed or authenticated."""
    kind = ErrorKind.FORMAT_CORRUPT


class VersionUnsupported(FormatCorrupt):
    """The vault file was written by an incompatible format version."""
    kind = ErrorKind.VERSION_UNSUPPORTED

    def __init__(self, version: int):
        super().__init__(f"unsupported vault format version {version}")
        self.version = version


class IOFailure(VaultError):
    """Reading or writing the vault file failed at the OS level."""
    kind = ErrorKind.IO_FAILURE

    def __init__(self, path: str, reason: Optional[str]):
        super().__init__(f"I/O error on {path}: {reason}")
        self.path = path
        self.reason = reason


# Session

class WrongPassphrase(VaultError):
    """The supplied passphrase does not unlock this vault."""
    kind = ErrorKind.WRONG_PASSPHRASE

    def __init__(self) -> None:
        super().__init__("wrong passphrase")


class VaultExists(VaultError):
    """A vault already exists where a new one was requested."""
    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, path: str):
        super().__init__(f"a vault already exists at {path}")
        self.path = path


class SessionClosed(VaultError):
    """The session was closed and its key erased."""
    kind = ErrorKind.SESSION_CLOSED

    def __init__(self) -> None:
        super().__init__("vault session is closed")


# Store

class EntryNotFound(VaultError):
    kind = ErrorKind.ENTRY_NOT_FOUND

    def __init__(self, service: str):
        super().__init__(f"no entry for service {service!r}")
        self.service = service


class DuplicateEntry(VaultError):
    kind = ErrorKind.DUPLICATE_ENTRY

    def __init__(self, service: str):
        super().__init__(f"an entry for service {service!r} already exists")
        self.service = service


_MESSAGES = {
    ErrorKind.NOT_FOUND: "No vault found at this location. Create one first.",
    ErrorKind.WRONG_PASSPHRASE: "Incorrect master passphrase.",
    ErrorKind.FORMAT_CORRUPT: "The vault file is damaged and cannot be opened.",
    ErrorKind.VERSION_UNSUPPORTED: "The vault file was created by an unsupported version.",
    ErrorKind.IO_FAILURE: "Could not access the vault file",
    ErrorKind.DERIVATION_FAILURE: "Could not derive the vault key.",
    # Cipher failures only reach users as a damaged file.
    ErrorKind.AUTHENTICATION_FAILURE: "The vault file is damaged and cannot be opened.",
    ErrorKind.ALREADY_EXISTS: "A vault already exists at this location.",
    ErrorKind.SESSION_CLOSED: "The vault is locked.",
    ErrorKind.ENTRY_NOT_FOUND: "No entry found for service",
    ErrorKind.DUPLICATE_ENTRY: "An entry already exists for service",
}


def describe(error: VaultError) -> str:
    """
    Return the user-facing message for a vault error.

    Only I/O failures and store errors add detail (the OS reason and the
    service name respectively); every other kind maps to a fixed message.
    """
    message = _MESSAGES[error.kind]
    if isinstance(error, IOFailure):
        return f"{message}: {error.reason}"
    if isinstance(error, (EntryNotFound, DuplicateEntry)):
        return f"{message}: {error.service}"
    return message
