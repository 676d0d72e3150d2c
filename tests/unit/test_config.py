"""Tests for settings."""

import pytest
from pydantic import ValidationError

from zkpool.config import Settings, get_settings, reset_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.tree_depth == 20
        assert settings.hasher == "poseidon-sponge"
        assert settings.root_history_size == 30
        assert settings.ledger_timeout == 30.0
        assert settings.prover_timeout == 120.0
        assert settings.note_encryption_key is None

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("ZKPOOL_TREE_DEPTH", "16")
        monkeypatch.setenv("ZKPOOL_HASHER", "sha256")
        monkeypatch.setenv("ZKPOOL_LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.tree_depth == 16
        assert settings.hasher == "sha256"
        assert settings.log_level == "DEBUG"

    def test_unknown_hasher(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, hasher="md5")

    @pytest.mark.parametrize("depth", [0, 33])
    def test_depth_bounds(self, depth):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, tree_depth=depth)

    def test_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, prover_timeout=0)

    def test_cached(self, monkeypatch):
        assert get_settings() is get_settings()
        monkeypatch.setenv("ZKPOOL_TREE_DEPTH", "12")
        reset_settings()
        assert get_settings().tree_depth == 12
