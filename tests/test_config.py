from __future__ import annotations

import json

import pytest

from estate_crm.config import ConfigurationError, Settings, load_configuration, load_settings
from estate_crm.factory import build_context, build_data_service


def test_yaml_file_values_are_overridden_by_environment(tmp_path) -> None:
    config_path = tmp_path / "crm.yaml"
    config_path.write_text(
        "crm:\n  api_url: https://file.test\n  api_key: file-key\n  sla_minutes: 45\n"
        "  storage_buckets: [documents]\n",
        encoding="utf-8",
    )

    settings = load_settings(config_path, env={"CRM_API_KEY": "env-key", "CRM_HTTP_TIMEOUT": "5"})

    assert settings.api_url == "https://file.test"
    assert settings.api_key == "env-key"
    assert settings.sla_minutes == 45
    assert settings.http_timeout == 5.0
    assert settings.storage_buckets == ["documents"]
    assert settings.timezone == "Asia/Dubai"


def test_bucket_list_from_environment() -> None:
    settings = load_settings(env={"CRM_STORAGE_BUCKETS": "a, b,,c"})

    assert settings.storage_buckets == ["a", "b", "c"]


def test_bad_number_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        load_settings(env={"CRM_SLA_MINUTES": "soon"})


def test_dotenv_file_is_loaded(tmp_path, monkeypatch) -> None:
    for variable in ("CRM_API_URL", "CRM_API_KEY"):
        monkeypatch.delenv(variable, raising=False)
    (tmp_path / ".env").write_text("CRM_API_URL=https://dotenv.test\nCRM_API_KEY=dotenv-key\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    try:
        settings = load_settings()
    finally:
        monkeypatch.delenv("CRM_API_URL", raising=False)
        monkeypatch.delenv("CRM_API_KEY", raising=False)

    assert settings.api_url == "https://dotenv.test"
    assert settings.api_key == "dotenv-key"


def test_load_configuration_errors(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_configuration(tmp_path / "missing.json")

    ini_path = tmp_path / "crm.ini"
    ini_path.write_text("[crm]", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_configuration(ini_path)

    list_path = tmp_path / "crm.json"
    list_path.write_text(json.dumps([1, 2]), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_configuration(list_path)


def test_factory_requires_connection_settings() -> None:
    with pytest.raises(ConfigurationError, match="CRM_API_URL"):
        build_data_service(Settings(api_key="k"))


def test_build_context_uses_configured_identity() -> None:
    settings = Settings(api_url="https://crm.test", api_key="k", user_id="agent-7", access_token="tok")

    context = build_context(settings)

    assert context.session.user_id == "agent-7"
    assert context.session.bearer_headers() == {"Authorization": "Bearer tok"}
    assert context.service.base_url == "https://crm.test"
    context.service.close()
