"""
Tests for configuration module.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from townlink.core.config import Settings


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self, monkeypatch) -> None:
        """Test that default values are set correctly."""
        for name in ("HASH_BITS", "MAX_SEARCH_NODES", "MAX_ROUNDS", "RAISE_ON_UNREACHABLE"):
            monkeypatch.delenv(f"TOWNLINK_{name}", raising=False)

        settings = Settings(_env_file=None)
        assert settings.hash_bits == 8
        assert settings.max_search_nodes == 0
        assert settings.max_rounds is None
        assert settings.raise_on_unreachable is True
        assert settings.environment == "development"

    def test_bucket_count(self) -> None:
        """Test bucket_count property."""
        settings = Settings(hash_bits=10)
        assert settings.bucket_count == 1024

    def test_custom_values(self) -> None:
        """Test setting custom configuration values."""
        settings = Settings(
            hash_bits=4,
            max_search_nodes=500,
            max_rounds=7,
            raise_on_unreachable=False,
            environment="production",
        )

        assert settings.hash_bits == 4
        assert settings.max_search_nodes == 500
        assert settings.max_rounds == 7
        assert settings.raise_on_unreachable is False
        assert settings.environment == "production"

    def test_environment_variables(self, monkeypatch) -> None:
        """Test that TOWNLINK_ environment variables are read."""
        monkeypatch.setenv("TOWNLINK_HASH_BITS", "12")
        monkeypatch.setenv("TOWNLINK_MAX_ROUNDS", "3")
        monkeypatch.setenv("TOWNLINK_RAISE_ON_UNREACHABLE", "false")

        settings = Settings(_env_file=None)
        assert settings.hash_bits == 12
        assert settings.max_rounds == 3
        assert settings.raise_on_unreachable is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"hash_bits": 0},
            {"hash_bits": 21},
            {"max_search_nodes": -1},
            {"max_rounds": 0},
            {"log_level": "VERBOSE"},
            {"environment": "testing"},
        ],
    )
    def test_invalid_values(self, kwargs) -> None:
        """Test that out of range values are rejected."""
        with pytest.raises(PydanticValidationError):
            Settings(**kwargs)
