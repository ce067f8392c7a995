"""Docker client creation shared by the volume and network helpers."""
import logging

import docker
from docker.errors import DockerException

from labkit.errors import DeploymentError

logger = logging.getLogger(__name__)


def get_docker_client(client=None):
    """Return `client`, or a client built from the environment."""
    if client is not None:
        return client
    try:
        client = docker.from_env()
    except DockerException as e:
        logger.error(f"Failed to initialize Docker client: {str(e)}")
        raise DeploymentError("connect to the Docker daemon", str(e)) from e
    logger.debug("Docker client initialized successfully")
    return client
