"""Test configuration parsing."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError
from safir.logging import LogLevel

from cshldap.config import LDAPConfig
from cshldap.constants import LDAP_POOL_SIZE, LDAP_SRV_RECORD


def test_defaults() -> None:
    config = LDAPConfig()
    assert config.bind_dn == "uid=drink,cn=users,dc=example"
    assert config.password.get_secret_value() == "some-password"
    assert config.srv_record == LDAP_SRV_RECORD
    assert config.pool_size == LDAP_POOL_SIZE
    assert config.timeout == timedelta(seconds=5)
    assert config.log_level == LogLevel.INFO


def test_from_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CSHLDAP_BIND_DN")
    path = tmp_path / "cshldap.yaml"
    path.write_text(
        "bindDn: uid=other,cn=users,dc=example\n"
        "srvRecord: _ldap._tcp.example.com\n"
        "poolSize: 1\n"
        "timeout: 10s\n"
        "logLevel: DEBUG\n"
    )
    config = LDAPConfig.from_file(path)
    assert config.bind_dn == "uid=other,cn=users,dc=example"
    assert config.password.get_secret_value() == "some-password"
    assert config.srv_record == "_ldap._tcp.example.com"
    assert config.pool_size == 1
    assert config.timeout == timedelta(seconds=10)
    assert config.log_level == LogLevel.DEBUG

    # The environment takes precedence over the file.
    monkeypatch.setenv("CSHLDAP_BIND_DN", "uid=env,cn=users,dc=example")
    config = LDAPConfig.from_file(path)
    assert config.bind_dn == "uid=env,cn=users,dc=example"


def test_invalid(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(ValidationError):
        LDAPConfig(pool_size=0)
    with pytest.raises(ValidationError):
        LDAPConfig(timeout=timedelta(seconds=0))
    with pytest.raises(ValidationError):
        LDAPConfig(unknown="foo")

    monkeypatch.delenv("CSHLDAP_PASSWORD")
    with pytest.raises(ValidationError):
        LDAPConfig()
