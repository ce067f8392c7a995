import pytest

from labkit.aws.clients import AWSClientManager
from labkit.config.settings import get_settings as get_labkit_settings
from webapps.config.settings import get_settings as get_webapp_settings
from tests.consts import TEST_ACCOUNT_ID, TEST_BUCKET_NAME, TEST_REGION

pytest_plugins = [
    "tests.fixtures.aws_fixtures",
    "tests.fixtures.docker_fixtures",
    "tests.fixtures.webapp_fixtures",
]


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Fake credentials and fresh cached settings/clients for every test."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.setenv("AWS_ACCOUNT_ID", TEST_ACCOUNT_ID)
    monkeypatch.setenv("S3_BUCKET_NAME", TEST_BUCKET_NAME)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    monkeypatch.delenv("DEPLOYMENT_MODE", raising=False)

    get_labkit_settings.cache_clear()
    get_webapp_settings.cache_clear()
    AWSClientManager.reset()
    yield
    get_labkit_settings.cache_clear()
    get_webapp_settings.cache_clear()
    AWSClientManager.reset()
