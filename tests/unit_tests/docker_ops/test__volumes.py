from unittest.mock import MagicMock

import pytest
from docker.errors import APIError, NotFound

from labkit.docker_ops.volumes import ensure_volume, list_volumes, remove_volume, run_with_volume
from labkit.errors import DeploymentError


def test__ensure_volume__creates_missing(docker_client):
    docker_client.volumes.get.side_effect = NotFound("no such volume")

    volume = ensure_volume("lab-data", client=docker_client)

    docker_client.volumes.create.assert_called_once_with(name="lab-data", driver="local")
    assert volume is docker_client.volumes.create.return_value


def test__ensure_volume__reuses_existing(docker_client):
    assert ensure_volume("lab-data", client=docker_client) is docker_client.volumes.get.return_value
    docker_client.volumes.create.assert_not_called()


def test__list_volumes__sorted(docker_client):
    b, a = MagicMock(), MagicMock()
    b.name, a.name = "b-data", "a-data"
    docker_client.volumes.list.return_value = [b, a]

    assert list_volumes(client=docker_client) == ["a-data", "b-data"]


def test__remove_volume(docker_client):
    assert remove_volume("lab-data", force=True, client=docker_client) is True
    docker_client.volumes.get.return_value.remove.assert_called_once_with(force=True)


def test__remove_volume__missing(docker_client):
    docker_client.volumes.get.side_effect = NotFound("no such volume")
    assert remove_volume("lab-data", client=docker_client) is False


def test__remove_volume__in_use(docker_client):
    docker_client.volumes.get.return_value.remove.side_effect = APIError("volume is in use")

    with pytest.raises(DeploymentError, match="remove volume lab-data"):
        remove_volume("lab-data", client=docker_client)


def test__run_with_volume(docker_client):
    run_with_volume("redis", "lab-data", "/data", name="cache", client=docker_client)

    docker_client.containers.run.assert_called_once_with(
        "redis",
        command=None,
        name="cache",
        volumes={"lab-data": {"bind": "/data", "mode": "rw"}},
        detach=True,
    )


def test__ensure_volume__lookup_error(docker_client):
    docker_client.volumes.get.side_effect = APIError("daemon error")

    with pytest.raises(DeploymentError, match="inspect volume lab-data"):
        ensure_volume("lab-data", client=docker_client)
    docker_client.volumes.create.assert_not_called()


def test__list_volumes__api_error(docker_client):
    docker_client.volumes.list.side_effect = APIError("daemon error")

    with pytest.raises(DeploymentError, match="list volumes"):
        list_volumes(client=docker_client)
