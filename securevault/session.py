"""
Vault session: open, mutate and save one vault file.

A session exclusively owns the derived key for one open/modify/save cycle.
The key is zeroed by ``close()``, on leaving a ``with`` block, and on every
failure path inside ``create``/``open``. Passphrases passed as ``bytearray``
or ``SecretBuffer`` are consumed: the session zeroes them once used.
"""

import os
import logging
from typing import List, Optional, Tuple

from . import config
from .container import EncryptedBlob, VaultHeader, read_vault, write_vault
from .crypto import CryptoManager, KdfParams
from .errors import (
    AuthenticationFailure,
    FormatCorrupt,
    SessionClosed,
    VaultExists,
    VaultNotFound,
    WrongPassphrase,
)
from .secure_memory import SecretBuffer, SecretLike, wipe
from .store import CredentialEntry, CredentialStore

logger = logging.getLogger(__name__)


class VaultSession:
    """An unlocked vault."""

    def __init__(self, path: str, header: VaultHeader, key: SecretBuffer,
                 store: CredentialStore, crypto: Optional[CryptoManager] = None):
        self.path = os.path.abspath(path)
        self._header = header
        self._key: Optional[SecretBuffer] = key
        self._store = store
        self.crypto = crypto or CryptoManager(header.params)

    @classmethod
    def create(cls, path: str, passphrase: SecretLike,
               params: Optional[KdfParams] = None) -> "VaultSession":
        """
        Create a new, empty vault and return an open session on it.

        Args:
            path: Where to write the vault file
            passphrase: The master passphrase
            params: Argon2id parameters; defaults from ``config``

        Raises:
            VaultExists: If a valid vault is already at ``path``.
            FormatCorrupt: If a damaged file is at ``path``; it is not
                overwritten.
        """
        with SecretBuffer.take(passphrase) as secret:
            try:
                read_vault(path)
            except VaultNotFound:
                pass
            else:
                raise VaultExists(path)

            crypto = CryptoManager(params)
            salt = crypto.generate_salt()
            with crypto.derive(secret, salt) as derived:
                header = VaultHeader(
                    version=config.FORMAT_VERSION,
                    params=crypto.params,
                    salt=salt,
                    verify_hash=derived.verify_hash,
                )
                session = cls(path, header, derived.take_key(), CredentialStore(), crypto)

        try:
            session.save()
        except BaseException:
            session.close()
            raise
        logger.info(f"Created new vault at {path}")
        return session

    @classmethod
    def open(cls, path: str, passphrase: SecretLike) -> "VaultSession":
        """
        Unlock an existing vault.

        The full key derivation always runs, even when the passphrase turns
        out to be wrong.

        Raises:
            VaultNotFound: If there is no vault at ``path``.
            WrongPassphrase: If the passphrase does not match the header.
            FormatCorrupt: If the header matches but the data does not
                authenticate or decode.
        """
        with SecretBuffer.take(passphrase) as secret:
            header, blob = read_vault(path)
            crypto = CryptoManager(header.params)
            with crypto.derive(secret, header.salt) as derived:
                if not crypto.secure_compare(derived.verify_hash, header.verify_hash):
                    logger.warning(f"Rejected passphrase for vault {path}")
                    raise WrongPassphrase()
                store = cls._decrypt_store(crypto, derived.key, blob)
                session = cls(path, header, derived.take_key(), store, crypto)
        logger.info(f"Unlocked vault {path}")
        return session

    @staticmethod
    def _decrypt_store(crypto: CryptoManager, key: SecretBuffer, blob: EncryptedBlob) -> CredentialStore:
        try:
            plaintext = bytearray(crypto.open(key, blob.nonce, blob.sealed))
        except AuthenticationFailure:
            raise FormatCorrupt("vault data failed authentication") from None
        try:
            return CredentialStore.from_bytes(plaintext)
        finally:
            wipe(plaintext)

    # Session state

    @property
    def closed(self) -> bool:
        return self._key is None

    @property
    def header(self) -> VaultHeader:
        return self._header

    def _require_key(self) -> SecretBuffer:
        if self._key is None:
            raise SessionClosed()
        return self._key

    def close(self) -> None:
        """Erase the key and drop the decrypted entries."""
        if self._key is not None:
            self._key.wipe()
            self._key = None
            self._store.clear()
            logger.debug(f"Closed vault session for {self.path}")

    def __enter__(self) -> "VaultSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        if getattr(self, "_key", None) is not None:
            self._key.wipe()

    # Credential operations

    def list(self) -> List[Tuple[str, Optional[str]]]:
        """Return (service, username) pairs sorted by service."""
        self._require_key()
        return self._store.list()

    def get(self, service: str) -> CredentialEntry:
        self._require_key()
        return self._store.get(service)

    def put(self, service: str, username: Optional[str], secret: str) -> CredentialEntry:
        """Add or replace an entry. Not persisted until ``save()``."""
        self._require_key()
        return self._store.put(service, username, secret)

    def add(self, service: str, username: Optional[str], secret: str) -> CredentialEntry:
        self._require_key()
        return self._store.add(service, username, secret)

    def update_secret(self, service: str, secret: str) -> CredentialEntry:
        self._require_key()
        return self._store.update_secret(service, secret)

    def delete(self, service: str) -> bool:
        self._require_key()
        return self._store.delete(service)

    # Persistence

    def save(self) -> None:
        """Encrypt the current entries under a fresh nonce and rewrite the file."""
        key = self._require_key()
        blob = self._seal_store(key)
        write_vault(self.path, self._header, blob)
        logger.info(f"Saved vault {self.path} ({len(self._store)} entries)")

    def change_passphrase(self, old: SecretLike, new: SecretLike) -> None:
        """
        Re-key the vault under a new passphrase.

        A fresh salt and key are derived for ``new`` and the current entries
        are re-encrypted under them; header and data are then written in a
        single atomic replace. The session keeps the old key if the write
        fails.

        Raises:
            WrongPassphrase: If ``old`` does not unlock this vault. Nothing
                is written in that case.
        """
        with SecretBuffer.take(old) as old_secret, SecretBuffer.take(new) as new_secret:
            self._require_key()
            if not self.crypto.verify(old_secret, self._header.salt, self._header.verify_hash,
                                      self._header.params):
                logger.warning(f"Rejected old passphrase for vault {self.path}")
                raise WrongPassphrase()

            crypto = CryptoManager(self.crypto.params)
            salt = crypto.generate_salt()
            with crypto.derive(new_secret, salt) as derived:
                header = VaultHeader(
                    version=config.FORMAT_VERSION,
                    params=crypto.params,
                    salt=salt,
                    verify_hash=derived.verify_hash,
                )
                blob = self._seal_store(derived.key, crypto)
                write_vault(self.path, header, blob)

                old_key = self._key
                self._key = derived.take_key()
                self._header = header
                self.crypto = crypto
                old_key.wipe()
        logger.info(f"Changed master passphrase for vault {self.path}")

    def _seal_store(self, key: SecretBuffer, crypto: Optional[CryptoManager] = None) -> EncryptedBlob:
        crypto = crypto or self.crypto
        nonce = crypto.generate_nonce()
        plaintext = self._store.to_bytes()
        try:
            sealed = crypto.seal(key, nonce, plaintext)
        finally:
            wipe(plaintext)
        return EncryptedBlob(nonce=nonce, sealed=sealed)
