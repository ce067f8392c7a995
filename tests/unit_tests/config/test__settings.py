import pytest
from pydantic import ValidationError

from labkit.config.settings import MOCK_ACCOUNT_ID, Settings
from webapps.config.settings import Settings as WebAppSettings


def test__defaults(monkeypatch):
    monkeypatch.delenv("AWS_ACCOUNT_ID")
    settings = Settings(deployment_mode="local-dev")

    assert settings.aws_region == "us-east-1"
    assert settings.ecr_repo_name == "labkit-web"
    assert settings.aws_endpoint_url is None
    assert settings.uses_local_endpoint is False
    assert settings.account_id == MOCK_ACCOUNT_ID


@pytest.mark.parametrize("alias, mode", [("moto", "aws-mock"), ("local-mock", "local-dev"), ("cloud", "aws-prod")])
def test__deployment_mode_aliases(monkeypatch, alias, mode):
    monkeypatch.setenv("DEPLOYMENT_MODE", alias)
    assert Settings().deployment_mode == mode


def test__aws_mock__defaults_to_local_endpoint(monkeypatch):
    monkeypatch.setenv("DEPLOYMENT_MODE", "aws-mock")
    settings = Settings()

    assert settings.aws_endpoint_url == "http://localhost:5000"
    assert settings.uses_local_endpoint is True


def test__aws_prod__ignores_endpoint_for_clients(monkeypatch):
    monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")
    assert Settings().uses_local_endpoint is False


def test__invalid_mode(monkeypatch):
    monkeypatch.setenv("DEPLOYMENT_MODE", "staging")
    with pytest.raises(ValidationError):
        Settings()


def test__ecr_registry():
    assert Settings().ecr_registry == "123456789012.dkr.ecr.us-east-1.amazonaws.com"


def test__webapp_settings_from_env(monkeypatch):
    monkeypatch.setenv("APP_VARIANT", "counter")
    monkeypatch.setenv("REDIS_HOST", "cache")
    settings = WebAppSettings()

    assert settings.app_variant == "counter"
    assert settings.redis_host == "cache"
    assert settings.redis_port == 6379


def test__webapp_settings__unknown_variant():
    with pytest.raises(ValidationError):
        WebAppSettings(app_variant="blog")
