"""
Cryptographic operations for the vault.

Key derivation: one Argon2id pass over (passphrase, salt) produces master
material, and HKDF-SHA256 expands it under two distinct info tags into the
verification hash stored in the header and the AES-256-GCM key kept in
memory. Neither output can be computed from the other.

Authenticated encryption: AES-256-GCM with a fresh random 96-bit nonce per
seal. Decryption fails closed and never distinguishes a wrong key from
damaged data.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import constant_time, hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from . import config
from .errors import AuthenticationFailure, DerivationFailure
from .secure_memory import SecretBuffer, SecretLike, wipe

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KdfParams:
    """Argon2id cost parameters, recorded in every vault header."""
    time_cost: int = config.ARGON2_TIME_COST
    memory_cost: int = config.ARGON2_MEMORY_COST
    parallelism: int = config.ARGON2_PARALLELISM

    def validate(self) -> None:
        """Raise DerivationFailure if the parameters are out of range."""
        if not 1 <= self.parallelism <= config.ARGON2_PARALLELISM_MAX:
            raise DerivationFailure(f"invalid Argon2 parallelism: {self.parallelism}")
        if not 1 <= self.time_cost <= config.ARGON2_TIME_COST_MAX:
            raise DerivationFailure(f"invalid Argon2 time cost: {self.time_cost}")
        if not 8 * self.parallelism <= self.memory_cost <= config.ARGON2_MEMORY_COST_MAX:
            raise DerivationFailure(f"invalid Argon2 memory cost: {self.memory_cost}")


class DerivedSecrets:
    """
    Output of one derivation: the verification hash and the encryption key.

    The key is owned by this object until ``take_key`` hands it on; using the
    object as a context manager wipes a key nobody took.
    """

    def __init__(self, verify_hash: bytes, key: SecretBuffer):
        self.verify_hash = verify_hash
        self._key: Optional[SecretBuffer] = key

    @property
    def key(self) -> SecretBuffer:
        if self._key is None:
            raise ValueError("derived key has already been taken")
        return self._key

    def take_key(self) -> SecretBuffer:
        key = self.key
        self._key = None
        return key

    def wipe(self) -> None:
        if self._key is not None:
            self._key.wipe()
            self._key = None

    def __enter__(self) -> "DerivedSecrets":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()


class CryptoManager:
    """Handles all cryptographic operations for the vault."""

    # Constants
    SALT_SIZE = config.SALT_SIZE
    KEY_SIZE = config.KEY_SIZE
    NONCE_SIZE = config.NONCE_SIZE
    TAG_SIZE = config.TAG_SIZE

    def __init__(self, params: Optional[KdfParams] = None):
        """
        Initialize the crypto manager.

        Args:
            params: Argon2id parameters used when none are given to
                ``derive``; defaults to the values in ``config``.
        """
        self.params = params or KdfParams()

    def generate_salt(self) -> bytes:
        """Generate a cryptographically secure random salt."""
        return os.urandom(self.SALT_SIZE)

    def generate_nonce(self) -> bytes:
        """Generate a fresh random nonce for one seal operation."""
        return os.urandom(self.NONCE_SIZE)

    def derive(self, passphrase: SecretLike, salt: bytes,
               params: Optional[KdfParams] = None) -> DerivedSecrets:
        """
        Derive the verification hash and encryption key from a passphrase.

        Args:
            passphrase: The master passphrase. A bytearray is zeroed
                once read; a SecretBuffer is left to its owner.
            salt: The vault salt
            params: Argon2id parameters; the manager defaults if omitted

        Returns:
            DerivedSecrets holding a 32-byte hash and a 32-byte key

        Raises:
            DerivationFailure: On malformed parameters or salt, or when
                Argon2 cannot allocate its working memory.
        """
        owned = not isinstance(passphrase, SecretBuffer)
        secret = SecretBuffer.take(passphrase)
        master = bytearray()
        try:
            params = params or self.params
            params.validate()
            if not config.SALT_SIZE_MIN <= len(salt) <= config.SALT_SIZE_MAX:
                raise DerivationFailure(f"invalid salt length: {len(salt)}")

            try:
                master = bytearray(hash_secret_raw(
                    secret=bytes(secret.view()),
                    salt=salt,
                    time_cost=params.time_cost,
                    memory_cost=params.memory_cost,
                    parallelism=params.parallelism,
                    hash_len=self.KEY_SIZE,
                    type=Type.ID,
                ))
            except (HashingError, MemoryError) as e:
                logger.error(f"Argon2id derivation failed: {type(e).__name__}")
                raise DerivationFailure("key derivation failed") from e

            verify_hash = self._expand(master, config.HKDF_INFO_VERIFY, config.VERIFY_HASH_SIZE)
            key = SecretBuffer(self._expand(master, config.HKDF_INFO_ENCRYPT, self.KEY_SIZE))
            return DerivedSecrets(verify_hash, key)
        finally:
            wipe(master)
            if owned:
                secret.wipe()

    def verify(self, candidate: SecretLike, salt: bytes, stored_hash: bytes,
               params: Optional[KdfParams] = None) -> bool:
        """Re-derive from a candidate passphrase and compare in constant time."""
        with self.derive(candidate, salt, params) as derived:
            return self.secure_compare(derived.verify_hash, stored_hash)

    def seal(self, key: SecretBuffer, nonce: bytes, plaintext: bytes) -> bytes:
        """
        Encrypt data using AES-256-GCM.

        Args:
            key: 32-byte encryption key
            nonce: 12-byte nonce, never reused under the same key
            plaintext: Data to encrypt

        Returns:
            Ciphertext with the 16-byte tag appended
        """
        self._check_sizes(key, nonce)
        return AESGCM(key.view()).encrypt(nonce, plaintext, None)

    def open(self, key: SecretBuffer, nonce: bytes, sealed: bytes) -> bytes:
        """
        Decrypt data sealed with ``seal``.

        Raises:
            AuthenticationFailure: If the data does not authenticate under
                this key and nonce. No partial plaintext is ever returned.
        """
        self._check_sizes(key, nonce)
        if len(sealed) < self.TAG_SIZE:
            raise AuthenticationFailure()
        try:
            return AESGCM(key.view()).decrypt(nonce, bytes(sealed), None)
        except InvalidTag:
            raise AuthenticationFailure() from None

    @staticmethod
    def secure_compare(a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return constant_time.bytes_eq(bytes(a), bytes(b))

    def _check_sizes(self, key: SecretBuffer, nonce: bytes) -> None:
        if len(key) != self.KEY_SIZE:
            raise ValueError(f"key must be {self.KEY_SIZE} bytes")
        if len(nonce) != self.NONCE_SIZE:
            raise ValueError(f"nonce must be {self.NONCE_SIZE} bytes")

    @staticmethod
    def _expand(master: bytearray, info: bytes, length: int) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=length,
            salt=None,
            info=info,
        )
        return hkdf.derive(master)
