"""Pushing local images to an ECR repository."""
import base64
import logging
import subprocess
from typing import Callable, List, Optional, Tuple

from botocore.exceptions import ClientError

from labkit.aws.clients import get_ecr_client
from labkit.config.settings import get_settings
from labkit.errors import DeploymentError
from labkit.utils.decorators import deployment_step, retry

logger = logging.getLogger(__name__)


def repository_uri(account_id: str, region: str, repo_name: str, tag: str = "latest") -> str:
    return f"{account_id}.dkr.ecr.{region}.amazonaws.com/{repo_name}:{tag}"


def ensure_repository(repo_name: str, ecr_client=None) -> str:
    """Return the repository URI, creating the repository when it does not exist."""
    ecr_client = ecr_client or get_ecr_client()
    try:
        response = ecr_client.describe_repositories(repositoryNames=[repo_name])
        uri = response['repositories'][0]['repositoryUri']
        logger.info(f"Using existing ECR repository: {uri}")
        return uri
    except ecr_client.exceptions.RepositoryNotFoundException:
        logger.info(f"ECR repository {repo_name} not found, creating it")

    try:
        response = ecr_client.create_repository(
            repositoryName=repo_name,
            imageScanningConfiguration={'scanOnPush': True},
        )
    except ClientError as e:
        raise DeploymentError(f"create ECR repository {repo_name}", str(e)) from e

    uri = response['repository']['repositoryUri']
    logger.info(f"Created ECR repository: {uri}")
    return uri


def get_login(ecr_client=None) -> Tuple[str, str, str]:
    """Decode the ECR authorization token into (username, password, registry)."""
    ecr_client = ecr_client or get_ecr_client()
    token_data = ecr_client.get_authorization_token()['authorizationData'][0]
    username, password = base64.b64decode(token_data['authorizationToken']).decode('utf-8').split(':', 1)
    registry = token_data['proxyEndpoint'].replace('https://', '')
    return username, password, registry


def build_push_commands(local_image: str, remote_uri: str) -> List[List[str]]:
    return [
        ["docker", "tag", local_image, remote_uri],
        ["docker", "push", remote_uri],
    ]


@retry(max_attempts=3, delay=2.0, exceptions=(subprocess.CalledProcessError,))
def _run(command: List[str], runner: Callable, **kwargs) -> None:
    logger.info(f"Running: {' '.join(command[:3])} ...")
    runner(command, check=True, **kwargs)


@deployment_step("push image to ECR")
def push_image(local_image: str, repo_name: Optional[str] = None, tag: str = "latest",
               ecr_client=None, runner: Optional[Callable] = None) -> str:
    """
    Log in to ECR, tag `local_image` for the repository and push it.

    Returns the pushed image URI.
    """
    settings = get_settings()
    repo_name = repo_name or settings.ecr_repo_name
    runner = runner or subprocess.run
    ecr_client = ecr_client or get_ecr_client()

    repo_uri = ensure_repository(repo_name, ecr_client=ecr_client)
    remote_uri = f"{repo_uri}:{tag}"
    username, password, registry = get_login(ecr_client=ecr_client)

    try:
        _run(
            ["docker", "login", "--username", username, "--password-stdin", registry],
            runner,
            input=password,
            text=True,
        )
        for command in build_push_commands(local_image, remote_uri):
            _run(command, runner)
    except (subprocess.CalledProcessError, OSError) as e:
        # OSError: the docker CLI is missing or not executable
        raise DeploymentError(f"push {local_image} to {remote_uri}", str(e)) from e

    logger.info(f"Pushed image to ECR: {remote_uri}")
    return remote_uri
