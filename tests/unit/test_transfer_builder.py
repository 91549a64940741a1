# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import os

import pytest

from httpbridge.config import TransferSettings
from httpbridge.errors import InvalidConfiguration
from httpbridge.http import transfer
from httpbridge.http.models import HttpRequest
from httpbridge.http.streams import BufferStream, FileStream, IteratorStream
from httpbridge.http.transfer import HttpVersion, IPResolve, TransferOptionsBuilder, build_transfer_config
from httpbridge.options import ClientOptions, RequestOptions

SETTINGS = TransferSettings()


def _build(request, options=None):
    return build_transfer_config(request, options or ClientOptions(), SETTINGS)


def _header_names(config):
    return [line.split(":")[0].split(";")[0].lower() for line in config.http_headers]


def test_defaults_strip_fragment_and_map_version():
    config = _build(HttpRequest.create("GET", "http://example/a?b=1#frag"))
    assert config.method == "GET"
    assert config.url == "http://example/a?b=1"
    assert config.return_transfer is False
    assert config.include_headers is False
    assert config.connect_timeout == 150.0
    assert config.protocols == ("http", "https")
    assert config.http_version == HttpVersion.HTTP_1_1


@pytest.mark.parametrize(
    ("declared", "expected"),
    [("1.1", HttpVersion.HTTP_1_1), ("2", HttpVersion.HTTP_2_0), ("2.0", HttpVersion.HTTP_2_0), ("1.0", HttpVersion.HTTP_1_0)],
)
def test_protocol_version_mapping(declared, expected):
    request = HttpRequest.create("GET", "http://example/", protocol_version=declared)
    assert _build(request).http_version == expected


def test_small_declared_body_is_buffered():
    request = HttpRequest.create(
        "POST",
        "http://example/",
        {"Content-Length": "500000", "Transfer-Encoding": "chunked"},
        b"x" * 10,
    )
    config = _build(request)
    assert config.post_fields == b"x" * 10
    assert config.upload is False
    assert config.read_function is None
    assert "content-length" not in _header_names(config)
    assert "transfer-encoding" not in _header_names(config)


def test_large_declared_body_is_streamed():
    request = HttpRequest.create("PUT", "http://example/", {"Content-Length": "2000000"}, b"abc")
    config = _build(request)
    assert config.post_fields is None
    assert config.upload is True
    assert config.in_file_size == 2_000_000
    assert config.read_function(10) == b"abc"
    assert "content-length" not in _header_names(config)


def test_undeclared_body_is_streamed_from_start():
    body = BufferStream(b"abcdef")
    body.read(3)
    config = _build(HttpRequest.create("POST", "http://example/", body=body))
    assert config.upload is True
    assert config.in_file_size == 6
    assert config.read_function(100) == b"abcdef"


def test_body_of_unknown_size_is_streamed_without_length():
    config = _build(HttpRequest.create("POST", "http://example/", body=IteratorStream([b"a", b"b"])))
    assert config.upload is True
    assert config.in_file_size is None
    assert config.read_function(10) == b"ab"


def test_buffer_ceiling_comes_from_settings():
    request = HttpRequest.create("POST", "http://example/", {"Content-Length": "3"}, b"abc")
    config = build_transfer_config(request, ClientOptions(), TransferSettings(buffer_ceiling=2))
    assert config.upload is True


@pytest.mark.parametrize("method", ["PUT", "POST"])
def test_empty_put_and_post_get_zero_content_length(method):
    config = _build(HttpRequest.create(method, "http://example/"))
    assert "Content-Length: 0" in config.http_headers
    assert "Expect:" not in config.http_headers


def test_empty_head_expects_no_body():
    config = _build(HttpRequest.create("HEAD", "http://example/"))
    assert config.no_body is True
    assert config.read_function is None
    assert "Content-Length: 0" not in config.http_headers


def test_header_lines_and_blank_overrides():
    request = HttpRequest.create("POST", "http://example/", [("X-Empty", ""), ("X-Multi", "1"), ("X-Multi", "2")], b"a")
    config = _build(request)
    assert config.http_headers == ["X-Empty;", "X-Multi: 1", "X-Multi: 2", "Accept:", "Expect:", "Content-Type:"]


def test_existing_accept_and_content_type_are_not_blanked():
    request = HttpRequest.create(
        "POST", "http://example/", {"Accept": "application/json", "Content-Type": "text/plain"}, b"a"
    )
    config = _build(request)
    assert "Accept:" not in config.http_headers
    assert "Content-Type:" not in config.http_headers
    assert "Content-Type: text/plain" in config.http_headers
    assert "Expect:" in config.http_headers


def test_verify_toggles():
    request = HttpRequest.create("GET", "https://example/")
    disabled = _build(request, ClientOptions(verify=False))
    assert disabled.ssl_verify_peer is False
    assert disabled.ssl_verify_host == 0

    enabled = _build(request, ClientOptions(verify=True))
    assert enabled.ssl_verify_peer is True
    assert enabled.ssl_verify_host == 2
    assert enabled.ca_info is None
    assert enabled.ca_path is None

    untouched = _build(request)
    assert untouched.ssl_verify_peer is None


def test_verify_path_selects_bundle_or_directory(tmp_path):
    request = HttpRequest.create("GET", "https://example/")
    bundle = tmp_path / "ca.pem"
    bundle.write_text("pem")
    directory = tmp_path / "certs"
    directory.mkdir()
    link = tmp_path / "certs-link"
    os.symlink(directory, link)

    assert _build(request, ClientOptions(verify=str(bundle))).ca_info == str(bundle)
    assert _build(request, ClientOptions(verify=str(directory))).ca_path == str(directory)
    assert _build(request, ClientOptions(verify=str(link))).ca_path == str(link)
    with pytest.raises(InvalidConfiguration):
        _build(request, ClientOptions(verify=str(tmp_path / "missing.pem")))


def test_timeouts_are_converted_and_set_no_signal(monkeypatch):
    monkeypatch.setattr(transfer, "_is_windows", lambda: False)
    request = HttpRequest.create("GET", "http://example/")

    config = _build(request, ClientOptions(request_options=RequestOptions(timeout=0.5)))
    assert config.timeout_ms == 500
    assert config.no_signal is True

    config = _build(request, ClientOptions(connect_timeout=2))
    assert config.connect_timeout_ms == 2000
    assert config.timeout_ms is None
    assert config.no_signal is False

    config = _build(request, ClientOptions(connect_timeout=0.25))
    assert config.connect_timeout_ms == 250
    assert config.no_signal is True


def test_no_signal_is_not_set_on_windows(monkeypatch):
    monkeypatch.setattr(transfer, "_is_windows", lambda: True)
    request = HttpRequest.create("GET", "http://example/")
    config = _build(request, ClientOptions(request_options=RequestOptions(timeout=0.5)))
    assert config.timeout_ms == 500
    assert config.no_signal is False


def test_encoding_negotiation():
    options = ClientOptions(request_options=RequestOptions(encoding=True))

    config = _build(HttpRequest.create("GET", "http://example/"), options)
    assert config.encoding == ""
    assert "Accept-Encoding:" in config.http_headers

    config = _build(HttpRequest.create("GET", "http://example/", {"Accept-Encoding": "gzip"}), options)
    assert config.encoding == "gzip"
    assert "Accept-Encoding: gzip" in config.http_headers

    assert _build(HttpRequest.create("GET", "http://example/")).encoding is None


def test_cookies_are_serialized():
    config = _build(HttpRequest.create("GET", "http://example/"), ClientOptions(cookies={"a": "1", "b c": "2"}))
    assert config.cookie == "a=1; b%20c=2"
    assert _build(HttpRequest.create("GET", "http://example/")).cookie is None


def test_sink_defaults_to_buffer_and_wires_write_function():
    config = _build(HttpRequest.create("GET", "http://example/"))
    assert isinstance(config.sink, BufferStream)
    config.write_function(b"chunk")
    assert config.sink.getvalue() == b"chunk"


def test_sink_path_is_wrapped_lazily(tmp_path):
    path = tmp_path / "out.bin"
    config = _build(HttpRequest.create("GET", "http://example/"), ClientOptions(sink=str(path)))
    assert isinstance(config.sink, FileStream)
    assert config.sink.opened is False
    assert not path.exists()


def test_sink_in_missing_directory_fails(tmp_path):
    options = ClientOptions(sink=str(tmp_path / "missing" / "out.bin"))
    with pytest.raises(InvalidConfiguration):
        _build(HttpRequest.create("GET", "http://example/"), options)


def test_force_resolve_ip():
    request = HttpRequest.create("GET", "http://example/")
    assert _build(request).ip_resolve == IPResolve.WHATEVER
    assert _build(request, ClientOptions(force_resolve_ip="v4")).ip_resolve == IPResolve.V4
    assert _build(request, ClientOptions(force_resolve_ip="v6")).ip_resolve == IPResolve.V6


def test_proxy_settings():
    request = HttpRequest.create("GET", "http://example/")
    config = _build(request, ClientOptions(proxy={"host": "proxy.local", "port": 3128, "user": "u", "password": "p"}))
    assert config.proxy == "proxy.local"
    assert config.proxy_port == 3128
    assert config.proxy_userpwd == "u:p"

    config = _build(request, ClientOptions(proxy={"host": "proxy.local", "user": "u"}))
    assert config.proxy_port is None
    assert config.proxy_userpwd is None


def test_client_certificate_and_key(tmp_path):
    request = HttpRequest.create("GET", "https://example/")
    cert = tmp_path / "client.P12"
    cert.write_bytes(b"cert")
    key = tmp_path / "client.key"
    key.write_bytes(b"key")

    config = _build(request, ClientOptions(cert=[str(cert), "certpw"], ssl_key=[str(key), "keypw"]))
    assert config.ssl_cert == str(cert)
    assert config.ssl_cert_password == "certpw"
    assert config.ssl_cert_type == "P12"
    assert config.ssl_key == str(key)
    assert config.ssl_key_password == "keypw"

    pem = tmp_path / "client.pem"
    pem.write_bytes(b"cert")
    assert _build(request, ClientOptions(cert=str(pem))).ssl_cert_type is None


def test_missing_certificate_or_key_fails(tmp_path):
    request = HttpRequest.create("GET", "https://example/")
    with pytest.raises(InvalidConfiguration):
        _build(request, ClientOptions(cert=str(tmp_path / "missing.pem")))
    with pytest.raises(InvalidConfiguration):
        _build(request, ClientOptions(ssl_key=str(tmp_path / "missing.key")))


def test_progress_callback_is_adapted():
    calls = []
    options = ClientOptions(progress=lambda *args: calls.append(args))
    config = _build(HttpRequest.create("GET", "http://example/"), options)
    assert config.no_progress is False
    config.progress_function(object(), 10, 5, 3, 1)
    assert calls == [(10, 5, 3, 1)]


def test_non_callable_progress_fails():
    with pytest.raises(InvalidConfiguration):
        _build(HttpRequest.create("GET", "http://example/"), ClientOptions(progress="not callable"))


def test_basic_auth_adds_authorization_header():
    options = ClientOptions(request_options=RequestOptions(auth=["u", "p"]))
    config = _build(HttpRequest.create("GET", "http://example/"), options)
    assert "Authorization: Basic dTpw" in config.http_headers
    assert config.http_auth is None

    request = HttpRequest.create("GET", "http://example/", {"Authorization": "Bearer t"})
    config = _build(request, options)
    assert "Authorization: Bearer t" in config.http_headers
    assert "Authorization: Basic dTpw" not in config.http_headers


def test_digest_auth_sets_engine_credentials():
    options = ClientOptions(request_options=RequestOptions(auth=["u", "p", "digest"]))
    config = _build(HttpRequest.create("GET", "http://example/"), options)
    assert config.http_auth == "digest"
    assert config.userpwd == "u:p"
    assert "authorization" not in _header_names(config)


def test_builder_uses_loaded_settings_by_default(monkeypatch):
    monkeypatch.setenv("HTTPBRIDGE_CONNECT_TIMEOUT", "30")
    builder = TransferOptionsBuilder(ClientOptions())
    assert builder.build(HttpRequest.create("GET", "http://example/")).connect_timeout == 30.0
