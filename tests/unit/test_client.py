# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from httpbridge.config import TransferSettings
from httpbridge.errors import EngineError, InvalidConfiguration, NetworkError, RequestError
from httpbridge.http.adapters import StubTransferEngine
from httpbridge.http.client import Client
from httpbridge.http.models import HttpRequest
from httpbridge.http.streams import FileStream
from httpbridge.options import ClientOptions, RequestOptions


def _client(engine, base_url="http://127.0.0.1:3000", options=None):
    return Client.new(base_url, options, engine_factory=lambda: engine, settings=TransferSettings())


def test_send_returns_response_with_sink_body():
    engine = StubTransferEngine(status_code=404, headers={"X-Reply": ["yes"]}, body=b"missing")
    client = _client(engine)

    response = client.send("GET", "http://127.0.0.1:80/posts")

    config = engine.configs[0]
    assert config.url == "http://127.0.0.1:3000/posts"
    assert response.status_code == 404
    assert response.body is config.sink
    assert response.content == b"missing"
    assert response.get_header_line("x-reply") == "yes"
    assert response.protocol_version == "1.1"
    assert response.reason is None


def test_send_writes_into_configured_file_sink(tmp_path):
    path = tmp_path / "download.bin"
    engine = StubTransferEngine(body=b"payload")
    client = _client(engine, options=ClientOptions(sink=str(path)))

    response = client.send("GET", "/file")

    assert isinstance(response.body, FileStream)
    assert response.content == b"payload"
    response.close()
    assert path.read_bytes() == b"payload"
    assert client.options.sink == str(path)


def test_each_send_gets_its_own_buffer():
    engine = StubTransferEngine(body=b"x")
    client = _client(engine)

    first = client.send("GET", "/a")
    second = client.send("GET", "/b")

    assert first.body is not second.body
    assert client.options.sink is None


def test_resolve_failure_raises_network_error():
    engine = StubTransferEngine(error_code=EngineError.COULDNT_RESOLVE_HOST, error_message="Could not resolve host")
    client = _client(engine)
    request = HttpRequest.create("GET", "http://nowhere.invalid/")

    with pytest.raises(NetworkError) as excinfo:
        client.send_request(request)

    err = excinfo.value
    assert err.error_code == EngineError.COULDNT_RESOLVE_HOST
    assert err.status_code == 503
    assert str(err.request.uri) == "http://127.0.0.1:3000/"
    assert "Could not resolve host" in str(err)


@pytest.mark.parametrize(
    ("code", "status"),
    [(EngineError.OPERATION_TIMEDOUT, 408), (EngineError.SSL_CONNECT_ERROR, 502), (EngineError.WRITE_ERROR, 500)],
)
def test_other_engine_failures_raise_request_error(code, status):
    client = _client(StubTransferEngine(error_code=code))

    with pytest.raises(RequestError) as excinfo:
        client.send("GET", "/")

    assert not isinstance(excinfo.value, NetworkError)
    assert excinfo.value.status_code == status
    assert "engine error" in str(excinfo.value)


def test_soft_error_is_kept_as_reason():
    client = _client(StubTransferEngine(status_code=200, error_message="progress callback failed"))
    response = client.send("GET", "/")
    assert response.status_code == 200
    assert response.reason == "progress callback failed"


def test_out_of_range_status_is_mapped():
    client = _client(StubTransferEngine(status_code=0))
    assert client.send("GET", "/").status_code == 500


def test_invalid_configuration_is_raised_before_engine_runs(tmp_path):
    engine = StubTransferEngine()
    client = _client(engine, options=ClientOptions(sink=str(tmp_path / "missing" / "out")))

    with pytest.raises(InvalidConfiguration):
        client.send("GET", "/")
    assert engine.configs == []


def test_builders_return_new_clients():
    base = _client(StubTransferEngine())
    derived = base.with_request_header("X-Test", "1").json()

    assert "X-Test" not in base.options.request_options.headers
    assert dict(derived.options.request_options.headers) == {"X-Test": "1", "Content-Type": "application/json"}
    assert base.multipart().options.request_options.headers["Content-Type"] == "multipart/form-data"
    assert dict(base.options.request_options.headers) == {}


def test_auth_builders():
    engine = StubTransferEngine()
    client = _client(engine)

    client.basic_auth("u", "p").send("GET", "/")
    assert "Authorization: Basic dTpw" in engine.configs[-1].http_headers

    client.digest_auth("u", "p").send("GET", "/")
    assert engine.configs[-1].http_auth == "digest"
    assert engine.configs[-1].userpwd == "u:p"
    assert client.options.request_options.auth is None


def test_json_body_is_encoded_and_uploaded():
    engine = StubTransferEngine()
    client = _client(engine).json()
    request_options = client.options.request_options.with_body({"a": 1})
    client = client.with_options(client.options.with_request_options(request_options))

    client.send("POST", "/posts")

    assert engine.uploads == [b'{"a":1}']
    assert "Content-Type: application/json" in engine.configs[0].http_headers


def test_progress_callback_receives_counts():
    calls = []
    engine = StubTransferEngine(body=b"payload")
    client = _client(engine, options=ClientOptions(progress=lambda *args: calls.append(args)))

    client.send("POST", "/", body=b"abc")

    assert calls == [(7, 7, 3, 3)]


def test_new_accepts_mapping_options_and_no_base_url():
    engine = StubTransferEngine()
    client = Client.new(
        options={"request": {"query": {"page": 2}}, "unknown": True},
        engine_factory=lambda: engine,
        settings=TransferSettings(),
    )

    client.send("GET", "http://example/items")

    assert engine.configs[0].url == "http://example/items?page=2"
    assert client.options.base_url is None


def test_pipeline_stages_are_exposed():
    client = _client(StubTransferEngine(), options=ClientOptions(request_options=RequestOptions(query="a=1")))
    request = client.override_request(HttpRequest.create("GET", "/items"))
    assert str(request.uri) == "http://127.0.0.1:3000/items?a=1"
    config = client.build_transfer_config(request)
    assert config.url == "http://127.0.0.1:3000/items?a=1"


def test_file_stream_body_is_uploaded_and_left_intact(tmp_path):
    path = tmp_path / "upload.bin"
    path.write_bytes(b"important data")
    engine = StubTransferEngine()

    _client(engine).send("POST", "/upload", body=FileStream(path))

    assert engine.uploads == [b"important data"]
    assert engine.configs[0].in_file_size == 14
    assert path.read_bytes() == b"important data"


class PartialWriteEngine(StubTransferEngine):
    def execute(self) -> None:
        super().execute()
        self._config.write_function(b"partial")


def test_file_sink_is_closed_when_transfer_fails(tmp_path):
    path = tmp_path / "download.bin"
    engine = PartialWriteEngine(error_code=EngineError.RECV_ERROR, error_message="connection reset")
    client = _client(engine, options=ClientOptions(sink=str(path)))

    with pytest.raises(RequestError):
        client.send("GET", "/file")

    sink = engine.configs[0].sink
    assert isinstance(sink, FileStream)
    assert sink.opened is True
    assert path.read_bytes() == b"partial"
