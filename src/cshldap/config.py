"""Configuration for the CSH LDAP client.

The client only needs the service account credentials and a few tuning
parameters. Settings normally come from a YAML file using camel-case keys.
The bind DN and password may also be set with the ``CSHLDAP_BIND_DN`` and
``CSHLDAP_PASSWORD`` environment variables, which take precedence. Only the
settings with explicit ``validation_alias`` settings support configuration
via environment variable.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Self, override

import yaml
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, configure_logging
from safir.pydantic import HumanTimedelta

from .constants import LDAP_POOL_SIZE, LDAP_SRV_RECORD, LDAP_TIMEOUT

__all__ = ["LDAPConfig"]


class LDAPConfig(BaseSettings):
    """Configuration for the LDAP client.

    Only simple binds with a single shared service account are supported.
    """

    model_config = SettingsConfigDict(
        alias_generator=to_camel,
        extra="forbid",
        populate_by_name=True,
    )

    bind_dn: str = Field(
        ...,
        title="Simple bind DN",
        description="DN of the service account used for every connection",
        validation_alias=AliasChoices("CSHLDAP_BIND_DN", "bindDn"),
    )

    password: SecretStr = Field(
        ...,
        title="Simple bind password",
        description="Password of the service account",
        validation_alias=AliasChoices("CSHLDAP_PASSWORD", "password"),
    )

    srv_record: str = Field(
        LDAP_SRV_RECORD,
        title="LDAP SRV record",
        description=(
            "DNS SRV record listing the LDAP servers. Every target is"
            " contacted with ``ldaps``."
        ),
    )

    pool_size: int = Field(
        LDAP_POOL_SIZE,
        title="Connection pool size",
        description=(
            "Maximum number of LDAP connections open at once. A size of 1"
            " serializes all operations over a single connection."
        ),
        ge=1,
    )

    timeout: HumanTimedelta = Field(
        timedelta(seconds=LDAP_TIMEOUT),
        title="Search timeout",
        description="Timeout for LDAP searches",
    )

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level",
    )

    @field_validator("timeout")
    @classmethod
    def _validate_timeout(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("timeout must be positive")
        return v

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support and allow environment
        variables to override init parameters.
        """
        return (env_settings, init_settings)

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct the configuration from a YAML file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        LDAPConfig
            The corresponding configuration. Environment variables override
            settings in the file.
        """
        with path.open("r") as f:
            return cls(**(yaml.safe_load(f) or {}))

    def configure_logging(self) -> None:
        """Configure logging based on the client configuration."""
        configure_logging(name="cshldap", log_level=self.log_level)
