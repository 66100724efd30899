"""Tests for securevault.session."""

import os

import pytest

from securevault.container import read_vault
from securevault.crypto import CryptoManager
from securevault.errors import (
    DuplicateEntry,
    EntryNotFound,
    FormatCorrupt,
    IOFailure,
    SessionClosed,
    VaultExists,
    VaultNotFound,
    VersionUnsupported,
    WrongPassphrase,
)
from securevault.secure_memory import SecretBuffer
from securevault.session import VaultSession


def _read(path):
    with open(path, "rb") as f:
        return f.read()


@pytest.fixture
def session(vault_path, fast_params):
    with VaultSession.create(vault_path, "correct horse", fast_params) as s:
        yield s


class TestCreate:
    def test_creates_empty_vault(self, vault_path, fast_params):
        with VaultSession.create(vault_path, "correct horse", fast_params) as s:
            assert s.list() == []
        with VaultSession.open(vault_path, "correct horse") as s:
            assert s.list() == []

    def test_header_records_params(self, session, vault_path, fast_params):
        header, _ = read_vault(vault_path)
        assert header.params == fast_params
        assert len(header.salt) == 32

    def test_refuses_existing_vault(self, session, vault_path, fast_params):
        before = _read(vault_path)
        with pytest.raises(VaultExists):
            VaultSession.create(vault_path, "another", fast_params)
        assert _read(vault_path) == before

    def test_refuses_damaged_file(self, vault_path, fast_params):
        with open(vault_path, "wb") as f:
            f.write(b"garbage")
        with pytest.raises(FormatCorrupt):
            VaultSession.create(vault_path, "pass", fast_params)
        assert _read(vault_path) == b"garbage"

    def test_fresh_salt_per_vault(self, tmp_path, fast_params):
        paths = [str(tmp_path / f"v{i}.enc") for i in range(2)]
        for p in paths:
            VaultSession.create(p, "same passphrase", fast_params).close()
        assert read_vault(paths[0])[0].salt != read_vault(paths[1])[0].salt

    def test_write_failure_wipes_key(self, vault_path, fast_params, monkeypatch):
        created = []
        original_init = VaultSession.__init__

        def tracking_init(self, *args, **kwargs):
            original_init(self, *args, **kwargs)
            created.append(self)

        def crash(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(VaultSession, "__init__", tracking_init)
        monkeypatch.setattr(os, "replace", crash)
        with pytest.raises(IOFailure):
            VaultSession.create(vault_path, "pass", fast_params)
        assert created and created[0].closed
        assert not os.path.exists(vault_path)


class TestOpen:
    def test_missing_vault(self, vault_path):
        with pytest.raises(VaultNotFound):
            VaultSession.open(vault_path, "anything")

    def test_wrong_passphrase_leaves_file_untouched(self, session, vault_path):
        before = _read(vault_path)
        with pytest.raises(WrongPassphrase):
            VaultSession.open(vault_path, "wrong guess")
        assert _read(vault_path) == before

    def test_wrong_passphrase_skips_decryption(self, session, vault_path, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("decryption attempted")

        monkeypatch.setattr(VaultSession, "_decrypt_store", staticmethod(fail))
        with pytest.raises(WrongPassphrase):
            VaultSession.open(vault_path, "wrong guess")

    def test_tampered_ciphertext_is_format_corrupt(self, session, vault_path):
        data = bytearray(_read(vault_path))
        data[-1] ^= 0x01
        with open(vault_path, "wb") as f:
            f.write(bytes(data))
        with pytest.raises(FormatCorrupt):
            VaultSession.open(vault_path, "correct horse")

    def test_tampered_ciphertext_is_not_wrong_passphrase(self, session, vault_path):
        data = bytearray(_read(vault_path))
        data[-5] ^= 0xFF
        with open(vault_path, "wb") as f:
            f.write(bytes(data))
        with pytest.raises(FormatCorrupt) as exc_info:
            VaultSession.open(vault_path, "correct horse")
        assert not isinstance(exc_info.value, WrongPassphrase)

    def test_tampered_ciphertext_wipes_derived_key(self, session, vault_path, monkeypatch):
        derived_keys = []
        original_derive = CryptoManager.derive

        def tracking_derive(self, *args, **kwargs):
            derived = original_derive(self, *args, **kwargs)
            derived_keys.append(derived.key)
            return derived

        data = bytearray(_read(vault_path))
        data[-1] ^= 0x01
        with open(vault_path, "wb") as f:
            f.write(bytes(data))

        monkeypatch.setattr(CryptoManager, "derive", tracking_derive)
        with pytest.raises(FormatCorrupt):
            VaultSession.open(vault_path, "correct horse")
        assert len(derived_keys) == 1
        assert derived_keys[0].wiped

    def test_future_version_rejected(self, session, vault_path):
        data = bytearray(_read(vault_path))
        data[8:12] = (7).to_bytes(4, "little")
        with open(vault_path, "wb") as f:
            f.write(bytes(data))
        with pytest.raises(VersionUnsupported):
            VaultSession.open(vault_path, "correct horse")

    def test_bytearray_passphrase_is_zeroed(self, session, vault_path):
        passphrase = bytearray(b"correct horse")
        VaultSession.open(vault_path, passphrase).close()
        assert passphrase == bytearray(len(passphrase))

    def test_bytearray_passphrase_zeroed_on_failure(self, session, vault_path):
        passphrase = bytearray(b"wrong guess")
        with pytest.raises(WrongPassphrase):
            VaultSession.open(vault_path, passphrase)
        assert passphrase == bytearray(len(passphrase))

    def test_secret_buffer_passphrase(self, session, vault_path):
        buffer = SecretBuffer(b"correct horse")
        VaultSession.open(vault_path, buffer).close()
        assert buffer.wiped


class TestEntries:
    def test_put_get(self, session):
        session.put("email", "me@x.com", "s3cr3t")
        entry = session.get("email")
        assert (entry.username, entry.secret) == ("me@x.com", "s3cr3t")

    def test_put_overwrites(self, session):
        session.put("email", "me@x.com", "old")
        session.put("email", "me@y.com", "new")
        assert session.get("email").secret == "new"
        assert session.list() == [("email", "me@y.com")]

    def test_add_duplicate(self, session):
        session.add("email", None, "s3cr3t")
        with pytest.raises(DuplicateEntry):
            session.add("email", None, "other")

    def test_get_missing(self, session):
        with pytest.raises(EntryNotFound):
            session.get("missing")

    def test_update_secret(self, session):
        session.put("bank", "me", "1234")
        session.update_secret("bank", "5678")
        assert session.get("bank").secret == "5678"
        with pytest.raises(EntryNotFound):
            session.update_secret("missing", "x")

    def test_delete(self, session):
        session.put("email", None, "s3cr3t")
        assert session.delete("email") is True
        assert session.delete("email") is False

    def test_list_sorted(self, session):
        session.put("zeta", "z", "1")
        session.put("alpha", None, "2")
        assert session.list() == [("alpha", None), ("zeta", "z")]

    def test_changes_not_persisted_until_save(self, session, vault_path):
        session.put("email", "me@x.com", "s3cr3t")
        with VaultSession.open(vault_path, "correct horse") as other:
            assert other.list() == []


class TestSave:
    def test_nonce_unique_across_saves(self, session, vault_path):
        nonces = set()
        for _ in range(1000):
            session.save()
            nonces.add(read_vault(vault_path)[1].nonce)
        assert len(nonces) == 1000

    def test_one_fresh_nonce_per_save(self, session, vault_path, monkeypatch):
        issued = []
        real_generate = session.crypto.generate_nonce

        def counting_generate():
            nonce = real_generate()
            issued.append(nonce)
            return nonce

        monkeypatch.setattr(session.crypto, "generate_nonce", counting_generate)
        for _ in range(3):
            session.save()
            assert read_vault(vault_path)[1].nonce == issued[-1]
        assert len(issued) == 3

    def test_relative_path_survives_chdir(self, tmp_path, fast_params, monkeypatch):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        monkeypatch.chdir(tmp_path)
        with VaultSession.create("vault.enc", "correct horse", fast_params) as s:
            assert s.path == str(tmp_path / "vault.enc")
            monkeypatch.chdir(elsewhere)
            s.put("email", "me@x.com", "s3cr3t")
            s.save()
        assert os.listdir(elsewhere) == []
        with VaultSession.open(str(tmp_path / "vault.enc"), "correct horse") as reopened:
            assert reopened.list() == [("email", "me@x.com")]

    def test_header_unchanged_by_save(self, session, vault_path):
        header_before = read_vault(vault_path)[0]
        session.put("email", None, "x")
        session.save()
        assert read_vault(vault_path)[0] == header_before

    def test_crash_before_replace_keeps_original(self, session, vault_path, monkeypatch):
        session.put("email", "me@x.com", "s3cr3t")
        session.save()
        before = _read(vault_path)

        def crash(src, dst):
            raise OSError(5, "Input/output error")

        session.put("bank", "me", "1234")
        monkeypatch.setattr(os, "replace", crash)
        with pytest.raises(IOFailure):
            session.save()
        monkeypatch.undo()

        assert _read(vault_path) == before
        with VaultSession.open(vault_path, "correct horse") as reopened:
            assert reopened.list() == [("email", "me@x.com")]

    def test_open_during_write_sees_old_file(self, session, vault_path, monkeypatch):
        session.put("email", "me@x.com", "s3cr3t")
        session.save()
        real_replace = os.replace
        seen = []

        def replace_after_concurrent_open(src, dst):
            with VaultSession.open(vault_path, "correct horse") as concurrent:
                seen.extend(concurrent.list())
            real_replace(src, dst)

        session.delete("email")
        monkeypatch.setattr(os, "replace", replace_after_concurrent_open)
        session.save()
        monkeypatch.undo()

        assert seen == [("email", "me@x.com")]
        with VaultSession.open(vault_path, "correct horse") as reopened:
            assert reopened.list() == []


class TestChangePassphrase:
    def test_old_fails_new_opens_same_contents(self, session, vault_path):
        session.put("email", "me@x.com", "s3cr3t")
        session.put("bank", None, "1234")
        session.save()
        expected = [(s, u, session.get(s).secret) for s, u in session.list()]

        session.change_passphrase("correct horse", "battery staple")

        with pytest.raises(WrongPassphrase):
            VaultSession.open(vault_path, "correct horse")
        with VaultSession.open(vault_path, "battery staple") as reopened:
            assert [(s, u, reopened.get(s).secret) for s, u in reopened.list()] == expected

    def test_fresh_salt(self, session, vault_path):
        salt_before = read_vault(vault_path)[0].salt
        session.change_passphrase("correct horse", "battery staple")
        assert read_vault(vault_path)[0].salt != salt_before

    def test_includes_unsaved_changes(self, session, vault_path):
        session.put("email", "me@x.com", "s3cr3t")
        session.change_passphrase("correct horse", "battery staple")
        with VaultSession.open(vault_path, "battery staple") as reopened:
            assert reopened.get("email").secret == "s3cr3t"

    def test_wrong_old_passphrase(self, session, vault_path):
        before = _read(vault_path)
        with pytest.raises(WrongPassphrase):
            session.change_passphrase("nope", "battery staple")
        assert _read(vault_path) == before
        session.save()
        VaultSession.open(vault_path, "correct horse").close()

    def test_session_keeps_working_after_change(self, session, vault_path):
        session.change_passphrase("correct horse", "battery staple")
        session.put("email", None, "x")
        session.save()
        with VaultSession.open(vault_path, "battery staple") as reopened:
            assert reopened.get("email").secret == "x"

    def test_failed_write_keeps_old_passphrase(self, session, vault_path, monkeypatch):
        def crash(src, dst):
            raise OSError(5, "Input/output error")

        monkeypatch.setattr(os, "replace", crash)
        with pytest.raises(IOFailure):
            session.change_passphrase("correct horse", "battery staple")
        monkeypatch.undo()

        session.save()
        VaultSession.open(vault_path, "correct horse").close()
        with pytest.raises(WrongPassphrase):
            VaultSession.open(vault_path, "battery staple")

    def test_consumes_bytearray_passphrases(self, session):
        old, new = bytearray(b"correct horse"), bytearray(b"battery staple")
        session.change_passphrase(old, new)
        assert old == bytearray(len(old))
        assert new == bytearray(len(new))


class TestClose:
    def test_close_wipes_key(self, vault_path, fast_params):
        s = VaultSession.create(vault_path, "pass", fast_params)
        key = s._key
        s.close()
        assert key.wiped
        assert s.closed

    def test_context_manager_wipes_key_on_error(self, vault_path, fast_params):
        with pytest.raises(RuntimeError):
            with VaultSession.create(vault_path, "pass", fast_params) as s:
                key = s._key
                raise RuntimeError("boom")
        assert key.wiped

    def test_operations_after_close(self, vault_path, fast_params):
        s = VaultSession.create(vault_path, "pass", fast_params)
        s.close()
        for call in (s.list, s.save, lambda: s.get("x"), lambda: s.put("x", None, "y"),
                     lambda: s.delete("x"), lambda: s.change_passphrase("pass", "new")):
            with pytest.raises(SessionClosed):
                call()

    def test_close_twice(self, vault_path, fast_params):
        s = VaultSession.create(vault_path, "pass", fast_params)
        s.close()
        s.close()


class TestScenarios:
    def test_store_and_reopen(self, vault_path, fast_params):
        with VaultSession.create(vault_path, "correct horse", fast_params) as s:
            s.put("email", "me@x.com", "s3cr3t")
            s.save()
        with VaultSession.open(vault_path, "correct horse") as s:
            entry = s.get("email")
            assert entry.username == "me@x.com"
            assert entry.secret == "s3cr3t"

    def test_delete_and_reopen(self, vault_path, fast_params):
        with VaultSession.create(vault_path, "correct horse", fast_params) as s:
            s.put("email", "me@x.com", "s3cr3t")
            s.save()
        with VaultSession.open(vault_path, "correct horse") as s:
            s.delete("email")
            s.save()
        with VaultSession.open(vault_path, "correct horse") as s:
            assert s.list() == []

    def test_metadata_survives_reopen(self, vault_path, fast_params):
        with VaultSession.create(vault_path, "pass", fast_params) as s:
            created = s.put("email", None, "x")
            s.save()
        with VaultSession.open(vault_path, "pass") as s:
            entry = s.get("email")
            assert entry.id == created.id
            assert entry.created_at == created.created_at
