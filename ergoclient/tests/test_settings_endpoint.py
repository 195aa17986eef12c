import pytest

from ergoclient.config import ClientSettings
from ergoclient.network.endpoint import EndpointProvider, build_ws_url, url_from_origin, validate_ws_url
from ergoclient.network.errors import InvalidEndpoint


def test_defaults():
    settings = ClientSettings()

    assert settings.reconnect_delay_seconds == 5.0
    assert settings.message_buffer_size == 50
    assert settings.server_path == "/ws"
    assert settings.transport == "websocket"


def test_yaml_config_file(tmp_path, monkeypatch):
    config = tmp_path / "client.yaml"
    config.write_text(
        "server_host: erg.example.com\nserver_secure: true\nreconnect_delay_seconds: 2\nlog_level: debug\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ERGO_CLIENT_CONFIG_FILE", str(config))

    settings = ClientSettings()

    assert settings.server_host == "erg.example.com"
    assert settings.server_secure is True
    assert settings.reconnect_delay_seconds == 2.0
    assert settings.log_level == "DEBUG"
    assert settings.config_path == config


def test_config_file_must_be_mapping(tmp_path, monkeypatch):
    config = tmp_path / "client.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("ERGO_CLIENT_CONFIG_FILE", str(config))

    with pytest.raises(ValueError):
        ClientSettings()


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("ERGO_CLIENT_SERVER_PATH", "live")
    monkeypatch.setenv("ERGO_CLIENT_MESSAGE_BUFFER_SIZE", "10")

    settings = ClientSettings()

    assert settings.server_path == "/live"
    assert settings.message_buffer_size == 10


def test_build_ws_url():
    assert build_ws_url("localhost:8080") == "ws://localhost:8080/ws"
    assert build_ws_url("erg.example.com", secure=True, path="live") == "wss://erg.example.com/live"


@pytest.mark.parametrize(
    ("origin", "expected"),
    [
        ("https://erg.example.com", "wss://erg.example.com/ws"),
        ("http://localhost:3000", "ws://localhost:3000/ws"),
        ("http://localhost:3000/dashboard", "ws://localhost:3000/ws"),
    ],
)
def test_url_from_origin(origin, expected):
    assert url_from_origin(origin) == expected


def test_url_from_origin_rejects_unknown_scheme():
    with pytest.raises(InvalidEndpoint):
        url_from_origin("ftp://erg.example.com")


@pytest.mark.parametrize("url", ["", "http://host/ws", "ws://", "host/ws", "ws://host:port/ws"])
def test_validate_rejects_malformed_urls(url):
    with pytest.raises(InvalidEndpoint):
        validate_ws_url(url)


def test_provider_builds_url_from_settings():
    provider = EndpointProvider(ClientSettings(server_host="erg.example.com", server_secure=True))

    assert provider.resolve() == "wss://erg.example.com/ws"


def test_provider_prefers_explicit_url_and_appends_token():
    settings = ClientSettings(server_url="ws://127.0.0.1:9000/ws", auth_token="static")

    assert EndpointProvider(settings).resolve() == "ws://127.0.0.1:9000/ws?token=static"


def test_token_supplier_is_called_each_resolve():
    tokens = iter(["first", "second"])
    provider = EndpointProvider(ClientSettings(), token_supplier=lambda: next(tokens))

    assert provider.resolve().endswith("?token=first")
    assert provider.resolve().endswith("?token=second")
