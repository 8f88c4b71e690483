import os

import pytest
from fastapi.testclient import TestClient

from cli import build_parser, generate_cookie_key, main
from core import settings as settings_module
from core.settings import SettingsError
from conftest import make_settings
from main import allowed_origins, create_app


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_about(client):
    payload = client.get("/api/about").json()["payload"]
    assert payload["name"] == "spectra"
    assert payload["python_version"]
    assert payload["features"] == {"turnstile": False}


def test_config_exposes_site_key_only_when_enabled(client):
    assert client.get("/api/config").json()["payload"] == {
        "turnstile_enabled": False,
        "turnstile_site_key": None,
    }


def _preflight(client, origin):
    return client.options(
        "/api/config",
        headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
    )


def test_cors_follows_domain(tmp_path):
    app = create_app(make_settings(tmp_path / "data", domain="share.example.com", port=8080))
    client = TestClient(app)

    allowed = _preflight(client, "https://share.example.com")
    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "https://share.example.com"
    assert _preflight(client, "http://127.0.0.1:8080").status_code == 200

    dev_server = _preflight(client, "http://localhost:5173")
    assert dev_server.status_code == 400
    assert "access-control-allow-origin" not in dev_server.headers
    plain = client.get("/api/config", headers={"Origin": "http://localhost:5173"})
    assert "access-control-allow-origin" not in plain.headers


def test_allowed_origins_skip_duplicate_local_address(tmp_path):
    settings = make_settings(tmp_path, domain="127.0.0.1:3000")
    assert allowed_origins(settings) == ["https://127.0.0.1:3000", "http://127.0.0.1:3000"]


def test_validate_rejects_short_cookie_key(tmp_path):
    with pytest.raises(SettingsError):
        settings_module.validate(make_settings(tmp_path, cookie_key="short"))


def test_validate_rejects_bad_cron(tmp_path):
    with pytest.raises(SettingsError):
        settings_module.validate(make_settings(tmp_path, refresh_cron="every hour"))


def test_validate_requires_turnstile_secret(tmp_path):
    with pytest.raises(SettingsError):
        settings_module.validate(make_settings(tmp_path, turnstile_enabled=True))


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u@h/db")
    monkeypatch.setenv("COOKIE_KEY", generate_cookie_key())
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("TURNSTILE_ENABLED", "false")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    settings = settings_module.from_env()
    assert settings.port == 8080
    assert settings.db_pool_max_size == 5
    assert settings.refresh_cron == "0 * * * *"


def test_from_env_rejects_non_integer(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u@h/db")
    monkeypatch.setenv("COOKIE_KEY", generate_cookie_key())
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(SettingsError):
        settings_module.from_env()


def test_config_file_does_not_override_environment(monkeypatch, tmp_path):
    path = tmp_path / "spectra.env"
    path.write_text("PORT=4000\nDOMAIN=share.example.com\n")
    monkeypatch.setenv("PORT", "5000")
    monkeypatch.setenv("DOMAIN", "unset")
    monkeypatch.delenv("DOMAIN")

    assert settings_module.load_config_file(path) is True

    assert os.environ["PORT"] == "5000"
    assert os.environ["DOMAIN"] == "share.example.com"


def test_cookie_key_is_long_enough():
    assert len(generate_cookie_key().encode()) >= settings_module.MIN_COOKIE_KEY_BYTES


def test_init_config_writes_file(tmp_path, capsys):
    path = tmp_path / "conf" / "spectra.env"
    assert main(["init-config", "--path", str(path)]) == 0
    text = path.read_text()
    assert "COOKIE_KEY=" in text
    assert main(["init-config", "--path", str(path)]) == 1
    assert main(["init-config", "--path", str(path), "--force"]) == 0


def test_systemd_unit(tmp_path, capsys):
    assert main(["systemd-unit", "--user", "share", "--workdir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "User=share" in out
    assert f"WorkingDirectory={tmp_path.resolve()}" in out
    assert out.rstrip().endswith("WantedBy=multi-user.target")


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
