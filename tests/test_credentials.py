from __future__ import annotations

import pytest

from volroute.core.credentials import CredentialStore


def test_missing_file_means_not_paired(tmp_path):
    store = CredentialStore(tmp_path / "config_client_key.txt")
    assert store.load() == ""
    assert store.has_key() is False


def test_empty_file_means_not_paired(tmp_path):
    path = tmp_path / "config_client_key.txt"
    path.write_text("", encoding="utf-8")
    assert CredentialStore(path).has_key() is False


def test_save_and_load_first_line(tmp_path):
    path = tmp_path / "nested" / "config_client_key.txt"
    store = CredentialStore(path)

    store.save("secret-key")
    assert path.read_text(encoding="utf-8") == "secret-key"

    path.write_text("  other-key \nignored\n", encoding="utf-8")
    assert store.load() == "other-key"


def test_save_rejects_empty_key(tmp_path):
    with pytest.raises(ValueError):
        CredentialStore(tmp_path / "k.txt").save("")


def test_delete_is_idempotent(tmp_path):
    store = CredentialStore(tmp_path / "k.txt")
    store.save("secret")

    store.delete()
    store.delete()

    assert store.has_key() is False
