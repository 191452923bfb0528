# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ("RestSettings", "settings")


class RestSettings(BaseSettings, frozen=True):
    """Library defaults with environment variable support.

    Every field can be overridden with a ``LIONREST_`` prefixed variable,
    e.g. ``LIONREST_TIMEOUT=10``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIONREST_",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    timeout: float = Field(30.0, description="Default transport timeout in seconds")
    max_io_workers: int = Field(
        8, description="Threads used to run enqueued calls"
    )
    validate_eagerly: bool = Field(
        False, description="Compile every service method in create()"
    )
    max_retries: int = Field(
        1, description="Attempts made by AiohttpTransport (1 disables retry)"
    )
    user_agent: str = "lionrest"


# Create a singleton instance
settings = RestSettings()
