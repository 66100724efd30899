import os

import pytest

from securevault.crypto import CryptoManager, KdfParams

# Cheap Argon2id parameters so the suite runs quickly.
FAST_PARAMS = KdfParams(time_cost=1, memory_cost=64, parallelism=1)


@pytest.fixture
def fast_params():
    return FAST_PARAMS


@pytest.fixture
def crypto():
    return CryptoManager(FAST_PARAMS)


@pytest.fixture
def vault_path(tmp_path):
    return str(tmp_path / "vault.enc")


@pytest.fixture
def key(crypto):
    with crypto.derive(b"fixture passphrase", os.urandom(32)) as derived:
        yield derived.take_key()
