from unittest.mock import MagicMock, patch

import pytest
import redis
from fastapi import status
from fastapi.testclient import TestClient

from webapps.config.settings import Settings
from webapps.counter_store import CounterUnavailableError, HitCounter


def test__counter__increments_on_each_visit(counter_client: TestClient, redis_client):
    first = counter_client.get("/")
    second = counter_client.get("/")

    assert first.status_code == status.HTTP_200_OK
    assert first.text == "Hello World! I have been seen 1 times.\n"
    assert second.text == "Hello World! I have been seen 2 times.\n"
    redis_client.incr.assert_called_with("hits")


def test__counter__retries_while_redis_starts():
    client = MagicMock()
    client.incr.side_effect = [redis.exceptions.ConnectionError("loading"), 7]
    counter = HitCounter(client, retries=3, retry_delay=0)

    assert counter.increment() == 7
    assert client.incr.call_count == 2


def test__counter__gives_up_after_retries():
    client = MagicMock()
    client.incr.side_effect = redis.exceptions.ConnectionError("refused")
    counter = HitCounter(client, retries=2, retry_delay=0)

    with pytest.raises(CounterUnavailableError):
        counter.increment()
    assert client.incr.call_count == 2


def test__counter_route__503_when_redis_down(counter_app, redis_client):
    redis_client.incr.side_effect = redis.exceptions.ConnectionError("refused")

    with TestClient(counter_app) as test_client:
        response = test_client.get("/")

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json() == {"detail": "Counter backend unavailable"}


def test__health__reports_redis(counter_client: TestClient, redis_client):
    response = counter_client.get("/health")
    assert response.json() == {"status": "ok", "variant": "counter", "redis": "ready"}

    redis_client.ping.side_effect = redis.exceptions.ConnectionError("refused")
    response = counter_client.get("/health")
    body = response.json()
    assert body["status"] == "degraded"
    assert body["redis"].startswith("error:")


@patch("webapps.counter_store.redis.Redis")
def test__counter_retries_is_total_attempts(mock_redis):
    mock_redis.return_value.incr.side_effect = redis.exceptions.ConnectionError("refused")
    counter = HitCounter.from_settings(Settings(counter_retries=5, counter_retry_delay=0))

    with pytest.raises(CounterUnavailableError):
        counter.increment()

    mock_redis.assert_called_once_with(host="redis", port=6379)
    assert mock_redis.return_value.incr.call_count == 5
