"""Central settings, loaded from environment variables and ``.env``."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from switchboard.config.constants import SERVICE_NAME
from switchboard.config.env_utils import read_env_file
from switchboard.config.models import (
    FLAT_ENV_MAP,
    AgentsConfig,
    ProviderConfig,
    QueueConfig,
    ServerConfig,
)


class Settings(BaseSettings):
    """All switchboard configuration in one place.

    Priority (highest → lowest):
      1. Explicit constructor values
      2. ``SWITCHBOARD_`` prefixed environment variables (``SWITCHBOARD_QUEUE__ATTEMPTS``)
      3. Flat platform variables (``REDIS_URL``, ``PORT``, ...) from the environment, then ``.env``
      4. Defaults defined here
    """

    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Sub-configs ---
    server: ServerConfig = Field(default_factory=ServerConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)

    # --- Top-level settings ---
    service_name: str = SERVICE_NAME
    log_level: str = "INFO"

    @model_validator(mode="before")
    @classmethod
    def apply_flat_env(cls, values: dict) -> dict:
        """Map flat platform env vars into nested sub-configs."""
        if not isinstance(values, dict):
            return values

        env_file_vals = read_env_file()

        for key_path, env_var in FLAT_ENV_MAP.items():
            val = os.environ.get(env_var) or env_file_vals.get(env_var)
            if not val:
                continue

            # Walk into the nested values dict, creating sub-dicts as needed.
            # Sub-configs passed as model instances are explicit and left alone.
            node = values
            skip = False
            for part in key_path[:-1]:
                if part not in node:
                    node[part] = {}
                elif not isinstance(node[part], dict):
                    skip = True
                    break
                node = node[part]

            if skip or key_path[-1] in node:
                continue
            node[key_path[-1]] = val

        return values


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
