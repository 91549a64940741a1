# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Declarative client and per-request options.

Both option types are frozen dataclasses: every `with_*` method returns a new
instance, so a Client and its clones never share mutable option state.
`from_mapping()` is the keyed factory; it only knows the fields declared
here, skips `None` values and ignores unknown keys.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .cookies import CookieJar
from .errors import InvalidConfiguration

if TYPE_CHECKING:
    from .http.streams import Stream

ProgressCallback = Callable[[int, int, int, int], Any]

AUTH_SCHEMES = frozenset({"basic", "digest"})
IP_RESOLVE_VALUES = frozenset({"v4", "v6"})


def _known_values(cls: type, data: Mapping[str, Any], aliases: Mapping[str, str] | None = None) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    values: dict[str, Any] = {}
    for key, value in data.items():
        if value is None:
            continue
        name = (aliases or {}).get(key, key)
        if name in names:
            values[name] = value
    return values


@dataclass(frozen=True)
class Auth:
    user: str
    password: str
    scheme: str = "basic"

    def __post_init__(self) -> None:
        scheme = str(self.scheme or "basic").lower()
        if scheme not in AUTH_SCHEMES:
            raise InvalidConfiguration(f"Unsupported auth scheme: {self.scheme}")
        object.__setattr__(self, "scheme", scheme)

    @property
    def credentials(self) -> str:
        return f"{self.user}:{self.password}"

    @classmethod
    def coerce(cls, value: Any) -> Auth:
        if isinstance(value, Auth):
            return value
        if isinstance(value, Mapping):
            return cls(str(value.get("user", "")), str(value.get("password", "")), value.get("scheme") or "basic")
        if isinstance(value, (list, tuple)) and len(value) in (2, 3):
            return cls(str(value[0]), str(value[1]), value[2] if len(value) == 3 else "basic")
        raise InvalidConfiguration("auth must be [user, password] or [user, password, scheme]")


@dataclass(frozen=True)
class ProxyConfig:
    host: str
    port: int | None = None
    user: str | None = None
    password: str | None = None

    def __post_init__(self) -> None:
        if not self.host:
            raise InvalidConfiguration("proxy host is required")
        if self.port is not None:
            try:
                object.__setattr__(self, "port", int(self.port))
            except (TypeError, ValueError) as exc:
                raise InvalidConfiguration(f"Invalid proxy port: {self.port!r}") from exc

    @classmethod
    def coerce(cls, value: Any) -> ProxyConfig:
        if isinstance(value, ProxyConfig):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, Mapping):
            values = _known_values(cls, value, {"pass": "password", "username": "user"})
            return cls(values.pop("host", ""), **values)
        if isinstance(value, (list, tuple)) and 1 <= len(value) <= 4:
            return cls(*value)
        raise InvalidConfiguration("proxy must be a host string, [host, port, user, password] or a mapping")


@dataclass(frozen=True)
class KeyFile:
    """A certificate or private key on disk with an optional passphrase."""

    path: str
    password: str | None = None

    def __post_init__(self) -> None:
        if not self.path:
            raise InvalidConfiguration("file path is required")
        object.__setattr__(self, "path", os.fspath(self.path))

    @classmethod
    def coerce(cls, value: Any) -> KeyFile:
        if isinstance(value, KeyFile):
            return value
        if isinstance(value, (str, os.PathLike)):
            return cls(os.fspath(value))
        if isinstance(value, Mapping):
            values = _known_values(cls, value)
            return cls(values.pop("path", ""), **values)
        if isinstance(value, (list, tuple)) and 1 <= len(value) <= 2:
            return cls(*value)
        raise InvalidConfiguration("cert/ssl_key must be a path or [path, password]")


@dataclass(frozen=True)
class RequestOptions:
    """Per-request overrides applied while materializing a request."""

    headers: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    auth: Auth | None = None
    query: Any = None
    encoding: str | bool | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Mapping):
            raise InvalidConfiguration("Request headers must be a mapping of header names to values")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        if self.auth is not None:
            object.__setattr__(self, "auth", Auth.coerce(self.auth))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None = None) -> RequestOptions:
        return cls(**_known_values(cls, data or {}))

    def with_headers(self, headers: Mapping[str, Any]) -> RequestOptions:
        return replace(self, headers=headers)

    def with_header(self, name: str, value: Any) -> RequestOptions:
        lower = name.lower()
        headers = {key: item for key, item in self.headers.items() if key.lower() != lower}
        headers[name] = value
        return replace(self, headers=headers)

    def with_body(self, body: Any) -> RequestOptions:
        return replace(self, body=body)

    def with_auth(self, user: str, password: str, scheme: str = "basic") -> RequestOptions:
        return replace(self, auth=Auth(user, password, scheme))

    def with_query(self, query: Any) -> RequestOptions:
        return replace(self, query=query)

    def with_encoding(self, encoding: str | bool | None) -> RequestOptions:
        return replace(self, encoding=encoding)

    def with_timeout(self, timeout: float | None) -> RequestOptions:
        return replace(self, timeout=timeout)


@dataclass(frozen=True)
class ClientOptions:
    """Per-client configuration. Timeouts are in seconds."""

    verify: bool | str | None = None
    sink: Stream | str | None = None
    force_resolve_ip: str | None = None
    proxy: ProxyConfig | None = None
    cert: KeyFile | None = None
    ssl_key: KeyFile | None = None
    progress: ProgressCallback | None = None
    base_url: str | None = None
    connect_timeout: float | None = None
    request_options: RequestOptions | None = None
    cookies: CookieJar = field(default_factory=CookieJar)

    def __post_init__(self) -> None:
        if self.force_resolve_ip is not None and self.force_resolve_ip is not False:
            if self.force_resolve_ip not in IP_RESOLVE_VALUES:
                raise InvalidConfiguration(f"force_resolve_ip must be 'v4' or 'v6', got {self.force_resolve_ip!r}")
        else:
            object.__setattr__(self, "force_resolve_ip", None)
        if isinstance(self.sink, os.PathLike):
            object.__setattr__(self, "sink", os.fspath(self.sink))
        if self.proxy is not None:
            object.__setattr__(self, "proxy", ProxyConfig.coerce(self.proxy))
        if self.cert is not None:
            object.__setattr__(self, "cert", KeyFile.coerce(self.cert))
        if self.ssl_key is not None:
            object.__setattr__(self, "ssl_key", KeyFile.coerce(self.ssl_key))
        if isinstance(self.request_options, Mapping):
            object.__setattr__(self, "request_options", RequestOptions.from_mapping(self.request_options))
        cookies = self.cookies.copy() if isinstance(self.cookies, CookieJar) else CookieJar(self.cookies or None)
        object.__setattr__(self, "cookies", cookies)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None = None) -> ClientOptions:
        return cls(**_known_values(cls, data or {}, {"request": "request_options"}))

    def with_verify(self, verify: bool | str | None) -> ClientOptions:
        return replace(self, verify=verify)

    def with_sink(self, sink: Stream | str | None) -> ClientOptions:
        return replace(self, sink=sink)

    def with_force_resolve_ip(self, value: str | None) -> ClientOptions:
        return replace(self, force_resolve_ip=value)

    def with_proxy(self, host: Any, port: int | None = None, user: str | None = None, password: str | None = None) -> ClientOptions:
        proxy = ProxyConfig.coerce(host) if port is None and user is None else ProxyConfig(host, port, user, password)
        return replace(self, proxy=proxy)

    def with_cert(self, path: Any, password: str | None = None) -> ClientOptions:
        return replace(self, cert=KeyFile(path, password) if password is not None else KeyFile.coerce(path))

    def with_ssl_key(self, path: Any, password: str | None = None) -> ClientOptions:
        return replace(self, ssl_key=KeyFile(path, password) if password is not None else KeyFile.coerce(path))

    def with_progress(self, progress: ProgressCallback | None) -> ClientOptions:
        return replace(self, progress=progress)

    def with_base_url(self, base_url: str | None) -> ClientOptions:
        return replace(self, base_url=base_url)

    def with_connect_timeout(self, timeout: float | None) -> ClientOptions:
        return replace(self, connect_timeout=timeout)

    def with_request_options(self, request_options: RequestOptions | Mapping[str, Any] | None) -> ClientOptions:
        return replace(self, request_options=request_options)

    def with_cookies(self, cookies: CookieJar | Mapping[str, str]) -> ClientOptions:
        return replace(self, cookies=cookies)


__all__ = ["AUTH_SCHEMES", "Auth", "ClientOptions", "KeyFile", "ProgressCallback", "ProxyConfig", "RequestOptions"]
