"""Configuration of the chat and notification services, read from YAML."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, TypeVar

import yaml

_APP_CONFIG_PATHS: tuple[Path, ...] = (Path("app.yml"), Path("/etc/config/app.yml"))
_APP_CONFIG_ENV = "CHAT_CONFIG"
_NOTIFY_CONFIG_PATHS: tuple[Path, ...] = (Path("notify.yml"), Path("/etc/config/notify.yml"))
_NOTIFY_CONFIG_ENV = "NOTIFY_CONFIG"


def _parse(text: Any) -> Mapping[str, Any]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid configuration: {exc}") from exc
    return _section(data, "configuration")


def _section(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"`{name}` must be a mapping")
    return value


def _field(data: Mapping[str, Any], name: str) -> Any:
    if name not in data:
        raise ValueError(f"missing field `{name}`")
    return data[name]


def _str(data: Mapping[str, Any], name: str) -> str:
    value = _field(data, name)
    if not isinstance(value, str):
        raise ValueError(f"field `{name}` must be a string")
    return value


def _port(data: Mapping[str, Any]) -> int:
    value = _field(data, "port")
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFFFF:
        raise ValueError(f"invalid port: {value!r}")
    return value


@dataclass
class ServerConfig:
    port: int
    db_url: str
    base_dir: Path

    @classmethod
    def _from_mapping(cls, data: Any) -> "ServerConfig":
        data = _section(data, "server")
        return cls(
            port=_port(data),
            db_url=_str(data, "db_url"),
            base_dir=Path(_str(data, "base_dir")),
        )


@dataclass
class AuthConfig:
    sk: str
    pk: str

    @classmethod
    def _from_mapping(cls, data: Any) -> "AuthConfig":
        data = _section(data, "auth")
        return cls(sk=_str(data, "sk"), pk=_str(data, "pk"))


@dataclass
class AppConfig:
    """Settings of the chat service."""

    server: ServerConfig
    auth: AuthConfig

    @classmethod
    def from_yaml(cls, text: Any) -> "AppConfig":
        data = _parse(text)
        return cls(
            server=ServerConfig._from_mapping(_field(data, "server")),
            auth=AuthConfig._from_mapping(_field(data, "auth")),
        )


@dataclass
class NotifyServerConfig:
    port: int
    db_url: str

    @classmethod
    def _from_mapping(cls, data: Any) -> "NotifyServerConfig":
        data = _section(data, "server")
        return cls(port=_port(data), db_url=_str(data, "db_url"))


@dataclass
class NotifyAuthConfig:
    pk: str

    @classmethod
    def _from_mapping(cls, data: Any) -> "NotifyAuthConfig":
        data = _section(data, "auth")
        return cls(pk=_str(data, "pk"))


@dataclass
class NotifyConfig:
    """Settings of the notification service."""

    server: NotifyServerConfig
    auth: NotifyAuthConfig

    @classmethod
    def from_yaml(cls, text: Any) -> "NotifyConfig":
        data = _parse(text)
        return cls(
            server=NotifyServerConfig._from_mapping(_field(data, "server")),
            auth=NotifyAuthConfig._from_mapping(_field(data, "auth")),
        )


_Config = TypeVar("_Config", AppConfig, NotifyConfig)


def _load(cls: type[_Config], candidates: tuple[Path, ...], env_var: str, missing: str) -> _Config:
    for path in candidates:
        try:
            with open(path, encoding="utf-8") as handle:
                text = handle.read()
        except OSError:
            continue
        return cls.from_yaml(text)
    env_path = os.environ.get(env_var)
    if env_path is None:
        raise FileNotFoundError(missing)
    with open(env_path, encoding="utf-8") as handle:
        return cls.from_yaml(handle.read())


def load_app_config() -> AppConfig:
    """Read ./app.yml, else /etc/config/app.yml, else the file named by CHAT_CONFIG."""
    return _load(AppConfig, _APP_CONFIG_PATHS, _APP_CONFIG_ENV, "No configuration file found")


def load_notify_config() -> NotifyConfig:
    """Read ./notify.yml, else /etc/config/notify.yml, else the file named by NOTIFY_CONFIG."""
    return _load(NotifyConfig, _NOTIFY_CONFIG_PATHS, _NOTIFY_CONFIG_ENV, "Config file not found")