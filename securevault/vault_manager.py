import os
from typing import Callable, Optional, Union

from . import config
from .crypto import KdfParams
from .errors import IOFailure
from .session import VaultSession

PassphraseSource = Callable[[], Union[bytes, bytearray, str]]


def get_default_vault_path() -> str:
    """
    Return the default vault location.

    ``$SECUREVAULT_PATH`` wins when set; otherwise the vault lives in
    ``~/.securevault/vault.enc``.
    """
    override = os.environ.get(config.VAULT_PATH_ENV)
    if override:
        return os.path.expanduser(override)
    home = os.path.expanduser("~")
    return os.path.join(home, config.CONFIG_DIR_NAME, config.DEFAULT_VAULT_FILE)


def resolve_vault_path(path: Optional[str] = None) -> str:
    """Resolves the vault path without touching the filesystem."""
    return os.path.abspath(os.path.expanduser(path)) if path else get_default_vault_path()


def vault_exists(path: Optional[str] = None) -> bool:
    return os.path.isfile(resolve_vault_path(path))


def open_vault(passphrase_source: PassphraseSource, path: Optional[str] = None) -> VaultSession:
    """Resolve the path, ask the source for the passphrase and unlock."""
    resolved = resolve_vault_path(path)
    return VaultSession.open(resolved, passphrase_source())


def create_vault(passphrase_source: PassphraseSource, path: Optional[str] = None,
                 params: Optional[KdfParams] = None) -> VaultSession:
    """
    Create the vault directory if needed, then a new vault inside it.

    Raises:
        IOFailure: If the directory cannot be created.
    """
    resolved = resolve_vault_path(path)
    try:
        os.makedirs(os.path.dirname(resolved), exist_ok=True)
    except OSError as e:
        raise IOFailure(resolved, e.strerror) from e
    return VaultSession.create(resolved, passphrase_source(), params)
