"""
Tests for environment settings and the services config loader.
"""

import os

import pytest

from config import find_service, load_services, settings_from_env
from services.errors import ConfigurationError


class TestLoadServices:

    def test_loads_camel_case_entries(self, write_services):
        path = write_services([
            {
                "id": "shop",
                "name": "Shop",
                "composeFile": "shop/compose.yml",
                "containerNames": ["shop-web-1"],
                "ui": {"color": "blue"},
            },
            {"id": "pg", "containerName": "postgres15"},
        ])
        services = load_services(path)

        assert [s.id for s in services] == ["shop", "pg"]
        assert services[0].compose_file == "shop/compose.yml"
        assert services[0].container_names == ["shop-web-1"]
        assert services[1].display_name == "pg"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_services(tmp_path / "nope.json")

    def test_invalid_json(self, settings):
        settings.services_config_path.write_text("[{")
        with pytest.raises(ConfigurationError):
            load_services(settings.services_config_path)

    def test_root_must_be_array(self, write_services):
        with pytest.raises(ConfigurationError, match="array"):
            load_services(write_services({"id": "shop"}))

    def test_entry_without_id(self, write_services):
        with pytest.raises(ConfigurationError, match="index 1"):
            load_services(write_services([{"id": "a"}, {"name": "no id"}]))

    def test_duplicate_ids(self, write_services):
        with pytest.raises(ConfigurationError, match="Duplicate"):
            load_services(write_services([{"id": "a"}, {"id": "a"}]))

    def test_find_service(self, write_services):
        services = load_services(write_services([{"id": "a"}, {"id": "b"}]))
        assert find_service(services, "b").id == "b"
        assert find_service(services, "zzz") is None


class TestSettingsFromEnv:

    def test_webhook_defaults(self, monkeypatch):
        for var in ("N8N_WEBHOOK_URL", "N8N_WEBHOOK_METHOD", "N8N_WEBHOOK_TIMEOUT", "N8N_WEBHOOK_HEADERS"):
            monkeypatch.delenv(var, raising=False)
        settings = settings_from_env()
        assert settings.webhook.url is None
        assert settings.webhook.method == "POST"
        assert settings.webhook.timeout == 5000
        assert settings.webhook.headers == {}

    def test_webhook_from_env(self, monkeypatch):
        monkeypatch.setenv("N8N_WEBHOOK_URL", "http://n8n.local/hook")
        monkeypatch.setenv("N8N_WEBHOOK_METHOD", "put")
        monkeypatch.setenv("N8N_WEBHOOK_TIMEOUT", "2500")
        monkeypatch.setenv("N8N_WEBHOOK_HEADERS", '{"X-Token": "abc"}')
        webhook = settings_from_env().webhook
        assert webhook.url == "http://n8n.local/hook"
        assert webhook.method == "PUT"
        assert webhook.timeout == 2500
        assert webhook.headers == {"X-Token": "abc"}

    def test_bad_headers_are_ignored(self, monkeypatch):
        monkeypatch.setenv("N8N_WEBHOOK_HEADERS", "not json")
        assert settings_from_env().webhook.headers == {}

    def test_compose_roots_split(self, monkeypatch, tmp_path):
        monkeypatch.setenv("COMPOSE_ROOTS", os.pathsep.join(["/srv/a", " ", "/srv/b"]))
        assert settings_from_env().compose_roots == ["/srv/a", "/srv/b"]

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("DOCKER_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError):
            settings_from_env()

    @pytest.mark.parametrize("value", ["0", "-100"])
    def test_non_positive_webhook_timeout(self, monkeypatch, value):
        monkeypatch.setenv("N8N_WEBHOOK_TIMEOUT", value)
        with pytest.raises(ConfigurationError):
            settings_from_env()


def test_non_positive_unit_webhook_timeout(write_services):
    path = write_services([{"id": "a", "webhook": {"url": "http://n8n/hook", "timeout": -100}}])
    with pytest.raises(ConfigurationError, match="index 0"):
        load_services(path)
