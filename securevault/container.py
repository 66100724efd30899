"""
On-disk container format for the vault.

File layout (little-endian, fixed-width integers):

    [u32 header_length]
    [header: magic "SVLT" | version u32 | time_cost u32 | memory_cost u32 |
             parallelism u32 | salt_len u8 | hash_len u8 | salt | verify_hash]
    [nonce: 12 bytes][ciphertext || tag: remaining bytes]

The version is read before anything else in the header so files from a
future format are rejected instead of misparsed. Writes go to a temporary
file in the same directory followed by an atomic replace, so the target is
always either the old complete file or the new complete file.
"""

import os
import struct
import logging
import tempfile
from dataclasses import dataclass
from typing import Tuple

from . import config
from .crypto import KdfParams
from .errors import DerivationFailure, FormatCorrupt, IOFailure, VaultNotFound, VersionUnsupported
from .utils import fsync_directory, set_file_permissions

logger = logging.getLogger(__name__)

LENGTH_PREFIX = struct.Struct("<I")
HEADER_PREAMBLE = struct.Struct("<4sI")
HEADER_V1_FIELDS = struct.Struct("<IIIBB")


@dataclass(frozen=True)
class VaultHeader:
    """Unencrypted vault header."""
    version: int
    params: KdfParams
    salt: bytes
    verify_hash: bytes


@dataclass(frozen=True)
class EncryptedBlob:
    """Nonce plus AES-GCM ciphertext with its tag appended."""
    nonce: bytes
    sealed: bytes

    def to_bytes(self) -> bytes:
        return self.nonce + self.sealed


def pack_header(header: VaultHeader) -> bytes:
    """Serialize a header to its byte layout."""
    if header.version != config.FORMAT_VERSION:
        raise VersionUnsupported(header.version)
    return (
        HEADER_PREAMBLE.pack(config.MAGIC_BYTES, header.version)
        + HEADER_V1_FIELDS.pack(
            header.params.time_cost,
            header.params.memory_cost,
            header.params.parallelism,
            len(header.salt),
            len(header.verify_hash),
        )
        + header.salt
        + header.verify_hash
    )


def unpack_header(data: bytes) -> VaultHeader:
    """
    Parse header bytes.

    Raises:
        FormatCorrupt: On bad magic, truncated fields or trailing bytes.
        VersionUnsupported: If the version is not one this package reads.
    """
    if len(data) < HEADER_PREAMBLE.size:
        raise FormatCorrupt("header truncated")
    magic, version = HEADER_PREAMBLE.unpack_from(data)
    if magic != config.MAGIC_BYTES:
        raise FormatCorrupt("not a vault file")
    if version != config.FORMAT_VERSION:
        raise VersionUnsupported(version)

    offset = HEADER_PREAMBLE.size
    if len(data) < offset + HEADER_V1_FIELDS.size:
        raise FormatCorrupt("header truncated")
    time_cost, memory_cost, parallelism, salt_len, hash_len = HEADER_V1_FIELDS.unpack_from(data, offset)
    offset += HEADER_V1_FIELDS.size

    if not config.SALT_SIZE_MIN <= salt_len <= config.SALT_SIZE_MAX:
        raise FormatCorrupt("invalid salt length")
    if hash_len != config.VERIFY_HASH_SIZE:
        raise FormatCorrupt("invalid verification hash length")
    if len(data) != offset + salt_len + hash_len:
        raise FormatCorrupt("header length mismatch")

    params = KdfParams(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)
    try:
        params.validate()
    except DerivationFailure:
        raise FormatCorrupt("invalid key derivation parameters") from None

    salt = data[offset:offset + salt_len]
    verify_hash = data[offset + salt_len:]
    return VaultHeader(
        version=version,
        params=params,
        salt=bytes(salt),
        verify_hash=bytes(verify_hash),
    )


def unpack_blob(data: bytes) -> EncryptedBlob:
    if len(data) < config.NONCE_SIZE + config.TAG_SIZE:
        raise FormatCorrupt("encrypted data truncated")
    return EncryptedBlob(nonce=bytes(data[:config.NONCE_SIZE]), sealed=bytes(data[config.NONCE_SIZE:]))


def encode_vault(header: VaultHeader, blob: EncryptedBlob) -> bytes:
    header_bytes = pack_header(header)
    return LENGTH_PREFIX.pack(len(header_bytes)) + header_bytes + blob.to_bytes()


def decode_vault(data: bytes) -> Tuple[VaultHeader, EncryptedBlob]:
    """Split raw file contents into header and blob."""
    if len(data) < LENGTH_PREFIX.size:
        raise FormatCorrupt("file truncated")
    (header_length,) = LENGTH_PREFIX.unpack_from(data)
    if header_length > config.HEADER_LENGTH_MAX or LENGTH_PREFIX.size + header_length > len(data):
        raise FormatCorrupt("header length exceeds file size")
    header_end = LENGTH_PREFIX.size + header_length
    header = unpack_header(data[LENGTH_PREFIX.size:header_end])
    blob = unpack_blob(data[header_end:])
    return header, blob


def read_vault(path: str) -> Tuple[VaultHeader, EncryptedBlob]:
    """
    Read and parse a vault file.

    Args:
        path: Path to the vault file

    Returns:
        Tuple of (header, blob)

    Raises:
        VaultNotFound: If nothing exists at ``path``.
        FormatCorrupt: If the file exists but is not a valid vault.
        IOFailure: For any other OS-level error.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except FileNotFoundError:
        raise VaultNotFound(path) from None
    except OSError as e:
        raise IOFailure(path, e.strerror) from e
    return decode_vault(data)


def write_vault(path: str, header: VaultHeader, blob: EncryptedBlob) -> None:
    """
    Atomically write a vault file.

    The data is written and fsynced to a temporary file next to ``path``,
    which then replaces ``path`` in one rename. On any failure the temporary
    file is removed and ``path`` is left as it was.

    Raises:
        IOFailure: If any step of the write fails.
    """
    data = encode_vault(header, blob)
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{os.path.basename(path)}.",
            suffix=config.TEMP_FILE_SUFFIX,
            dir=directory,
        )
    except OSError as e:
        raise IOFailure(path, e.strerror) from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if not set_file_permissions(tmp_path):
            logger.warning(f"Failed to set secure file permissions for vault: {path}.")
        os.replace(tmp_path, path)
    except OSError as e:
        logger.error(f"Error saving vault file {path}: {e.strerror}")
        _remove_quietly(tmp_path)
        raise IOFailure(path, e.strerror) from e
    except BaseException:
        _remove_quietly(tmp_path)
        raise

    fsync_directory(directory)


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary vault file {path}: {e.strerror}")
