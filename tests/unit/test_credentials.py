"""
Unit tests for sublingo/credentials.py.

This module tests:
- Environment variable precedence
- Saving, loading and clearing the stored key
- Key masking
"""

import os
import stat
import sys

import pytest

from sublingo.credentials import CredentialStore
from sublingo.exceptions import ConfigurationError

ENV_VAR = "SUBLINGO_TEST_API_KEY"


@pytest.fixture
def cred_store(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_VAR, raising=False)
    return CredentialStore(str(tmp_path / "creds" / "credentials.yaml"), ENV_VAR)


class TestLoad:
    """Test key lookup."""

    def test_no_key(self, cred_store):
        assert cred_store.load() is None

    def test_env_var_wins(self, cred_store, monkeypatch):
        cred_store.save("stored-key")
        monkeypatch.setenv(ENV_VAR, "  env-key  ")
        assert cred_store.load() == "env-key"

    def test_blank_env_var_falls_back_to_file(self, cred_store, monkeypatch):
        cred_store.save("stored-key")
        monkeypatch.setenv(ENV_VAR, "   ")
        assert cred_store.load() == "stored-key"

    def test_env_lookup_disabled(self, tmp_path, monkeypatch):
        monkeypatch.setenv(ENV_VAR, "env-key")
        store = CredentialStore(str(tmp_path / "credentials.yaml"), None)
        assert store.load() is None

    def test_invalid_yaml(self, cred_store):
        os.makedirs(os.path.dirname(cred_store.path))
        with open(cred_store.path, "w", encoding="utf-8") as f:
            f.write("api_key: [unclosed")
        with pytest.raises(ConfigurationError):
            cred_store.load()

    def test_non_mapping_root(self, cred_store):
        os.makedirs(os.path.dirname(cred_store.path))
        with open(cred_store.path, "w", encoding="utf-8") as f:
            f.write("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            cred_store.load()

    def test_empty_file(self, cred_store):
        os.makedirs(os.path.dirname(cred_store.path))
        open(cred_store.path, "w").close()
        assert cred_store.load() is None


class TestSaveAndClear:
    """Test persisting the key."""

    def test_round_trip(self, cred_store):
        cred_store.save("  my-secret-key ")
        assert cred_store.load() == "my-secret-key"

    @pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
    def test_file_is_private(self, cred_store):
        cred_store.save("my-secret-key")
        mode = stat.S_IMODE(os.stat(cred_store.path).st_mode)
        assert mode == 0o600

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_blank_key_rejected(self, cred_store, value):
        with pytest.raises(ValueError):
            cred_store.save(value)

    def test_clear(self, cred_store):
        cred_store.save("my-secret-key")
        assert cred_store.clear() is True
        assert cred_store.load() is None
        assert cred_store.clear() is False

    def test_path_is_expanded(self):
        store = CredentialStore("~/somewhere/credentials.yaml")
        assert not store.path.startswith("~")


class TestMask:
    """Test key masking."""

    @pytest.mark.parametrize("key, expected", [
        (None, "(not set)"),
        ("", "(not set)"),
        ("abc", "***"),
        ("abcd", "****"),
        ("AIzaSyExample1234", "*************1234"),
    ])
    def test_mask(self, key, expected):
        assert CredentialStore.mask(key) == expected
