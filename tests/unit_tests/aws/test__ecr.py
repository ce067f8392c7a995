import subprocess
from unittest.mock import MagicMock, patch

import pytest

from labkit.aws.ecr import build_push_commands, ensure_repository, get_login, push_image, repository_uri
from labkit.errors import DeploymentError
from tests.consts import TEST_ACCOUNT_ID, TEST_REGION, TEST_REPO_NAME


def test__repository_uri():
    assert repository_uri(TEST_ACCOUNT_ID, TEST_REGION, "web", "v1") == (
        "123456789012.dkr.ecr.us-east-1.amazonaws.com/web:v1"
    )


def test__ensure_repository__creates_then_reuses(ecr_client):
    uri = ensure_repository(TEST_REPO_NAME, ecr_client=ecr_client)

    assert uri.endswith(f"/{TEST_REPO_NAME}")
    repo = ecr_client.describe_repositories(repositoryNames=[TEST_REPO_NAME])["repositories"][0]
    assert repo["imageScanningConfiguration"]["scanOnPush"] is True

    assert ensure_repository(TEST_REPO_NAME, ecr_client=ecr_client) == uri


def test__get_login(ecr_client):
    username, password, registry = get_login(ecr_client=ecr_client)

    assert username == "AWS"
    assert password
    assert not registry.startswith("https://")


def test__build_push_commands():
    assert build_push_commands("web:latest", "repo/web:v1") == [
        ["docker", "tag", "web:latest", "repo/web:v1"],
        ["docker", "push", "repo/web:v1"],
    ]


def test__push_image__logs_in_tags_and_pushes(ecr_client):
    runner = MagicMock()

    remote = push_image("web:latest", repo_name=TEST_REPO_NAME, tag="v1",
                        ecr_client=ecr_client, runner=runner)

    assert remote.endswith(f"/{TEST_REPO_NAME}:v1")
    login, tag, push = [c.args[0] for c in runner.call_args_list]
    assert login[:2] == ["docker", "login"]
    assert "--password-stdin" in login
    assert runner.call_args_list[0].kwargs["input"]
    assert tag == ["docker", "tag", "web:latest", remote]
    assert push == ["docker", "push", remote]


def test__push_image__defaults_repo_from_settings(ecr_client):
    remote = push_image("web:latest", ecr_client=ecr_client, runner=MagicMock())
    assert remote.endswith("/labkit-web:latest")


@patch("labkit.utils.decorators.time.sleep")
def test__push_image__retries_then_fails(mock_sleep, ecr_client):
    runner = MagicMock(side_effect=subprocess.CalledProcessError(1, ["docker", "login"]))

    with pytest.raises(DeploymentError, match="push web:latest"):
        push_image("web:latest", repo_name=TEST_REPO_NAME, ecr_client=ecr_client, runner=runner)

    assert runner.call_count == 3
    assert mock_sleep.call_count == 2


@patch("labkit.utils.decorators.time.sleep")
def test__push_image__recovers_from_flaky_push(mock_sleep, ecr_client):
    runner = MagicMock(side_effect=[None, None, subprocess.CalledProcessError(1, ["docker", "push"]), None])

    push_image("web:latest", repo_name=TEST_REPO_NAME, ecr_client=ecr_client, runner=runner)

    assert runner.call_count == 4
    mock_sleep.assert_called_once_with(2.0)


def test__push_image__docker_cli_missing(ecr_client):
    runner = MagicMock(side_effect=FileNotFoundError(2, "No such file or directory", "docker"))

    with pytest.raises(DeploymentError, match="push web:latest"):
        push_image("web:latest", repo_name=TEST_REPO_NAME, ecr_client=ecr_client, runner=runner)

    assert runner.call_count == 1


@patch("labkit.aws.ecr.subprocess.run")
def test__push_image__defaults_to_subprocess(mock_run, ecr_client):
    push_image("web:latest", repo_name=TEST_REPO_NAME, ecr_client=ecr_client)

    assert mock_run.call_count == 3
    assert mock_run.call_args_list[0].kwargs["check"] is True
