from fastapi import status
from fastapi.testclient import TestClient

from webapps.config.settings import Settings, get_settings
from webapps.main import create_app
from webapps.routers.pages import ABOUT_TEXT, CONTACT_TEXT, STATUS_TEXT


def test__index__returns_greeting(client: TestClient):
    response = client.get("/")

    assert response.status_code == status.HTTP_200_OK
    assert response.text == "Hello, World!"
    assert response.headers["content-type"].startswith("text/plain")


def test__routed_pages__return_fixed_text(client: TestClient):
    expected = {
        "/about": ABOUT_TEXT,
        "/contact": CONTACT_TEXT,
        "/status": STATUS_TEXT,
    }
    for path, body in expected.items():
        response = client.get(path)
        assert response.status_code == status.HTTP_200_OK, path
        assert response.text == body


def test__hello_variant__only_serves_index(hello_client: TestClient):
    assert hello_client.get("/").text == "Hello, World!"
    assert hello_client.get("/about").status_code == status.HTTP_404_NOT_FOUND


def test__custom_greeting():
    app = create_app(Settings(app_variant="hello", greeting="Hello from Docker!"))
    with TestClient(app) as test_client:
        assert test_client.get("/").text == "Hello from Docker!"


def test__health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok", "variant": "routed"}


def test__unhandled_error__returns_generic_500():
    app = create_app(Settings(app_variant="hello"))

    @app.get("/boom", tags=["test"])
    async def boom():
        raise RuntimeError("kaboom")

    with TestClient(app) as test_client:
        response = test_client.get("/boom")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Internal server error"}


def test__create_app__reads_cached_settings(monkeypatch):
    monkeypatch.setenv("APP_VARIANT", "hello")
    monkeypatch.setenv("GREETING", "Hello from the environment!")

    app = create_app()

    assert app.state.settings is get_settings()
    with TestClient(app) as test_client:
        assert test_client.get("/").text == "Hello from the environment!"
        assert test_client.get("/about").status_code == status.HTTP_404_NOT_FOUND
