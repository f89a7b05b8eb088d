"""
Configuration settings for townlink.
"""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Road generation settings with environment variable support.

    Attributes:
        hash_bits: Number of bits of the tile hash used to bucket search nodes
        max_search_nodes: Node budget per search (0 = unlimited)
        max_rounds: Cap on generation rounds (None = unlimited)
        raise_on_unreachable: Raise when settlements are left unconnected
        log_level: Default log level
        environment: Deployment environment
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="TOWNLINK_",
    )

    # Search settings
    hash_bits: int = Field(default=8, ge=1, le=20)
    max_search_nodes: int = Field(default=0, ge=0)

    # Generation settings
    max_rounds: Optional[int] = Field(default=None, ge=1)
    raise_on_unreachable: bool = True

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    @property
    def bucket_count(self) -> int:
        """Number of hash buckets for the open/closed sets."""
        return 1 << self.hash_bits


# Global settings instance
settings = Settings()
