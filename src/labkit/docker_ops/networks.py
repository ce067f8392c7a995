"""Custom Docker networks for the container networking lab."""
import logging
from typing import Optional

from docker.errors import APIError, NotFound

from labkit.docker_ops.client import get_docker_client
from labkit.errors import DeploymentError

logger = logging.getLogger(__name__)


def ensure_network(network_name: str, driver: str = "bridge", client=None):
    """Return the network called `network_name`, creating it if it does not exist."""
    client = get_docker_client(client)

    try:
        networks = client.networks.list(names=[network_name])
        if networks:
            logger.info(f"Docker network {network_name} already exists")
            return networks[0]

        logger.info(f"Creating Docker network: {network_name}")
        network = client.networks.create(network_name, driver=driver)
    except APIError as e:
        raise DeploymentError(f"create network {network_name}", str(e)) from e
    logger.info(f"Created Docker network: {network_name}")
    return network


def connect_container(network_name: str, container_name: str, client=None) -> bool:
    """
    Attach a running container to a network.

    Returns False when the container does not exist, True once it is attached.
    """
    client = get_docker_client(client)
    try:
        container = client.containers.get(container_name)
    except NotFound:
        logger.warning(f"Container '{container_name}' not found, make sure it's running")
        return False
    except APIError as e:
        raise DeploymentError(f"inspect container {container_name}", str(e)) from e

    attached = container.attrs.get('NetworkSettings', {}).get('Networks', {}).keys()
    if network_name in attached:
        logger.info(f"Container {container_name} is already on {network_name}")
        return True

    try:
        client.networks.get(network_name).connect(container_name)
    except APIError as e:
        raise DeploymentError(f"connect {container_name} to {network_name}", str(e)) from e
    logger.info(f"Container {container_name} successfully connected to {network_name}")
    return True


def remove_network(network_name: str, client=None) -> bool:
    client = get_docker_client(client)
    try:
        client.networks.get(network_name).remove()
    except NotFound:
        logger.info(f"Docker network {network_name} does not exist")
        return False
    except APIError as e:
        raise DeploymentError(f"remove network {network_name}", str(e)) from e
    logger.info(f"Removed Docker network: {network_name}")
    return True


def run_on_network(image: str, network_name: str, name: Optional[str] = None, client=None, **kwargs):
    """Start a detached container from `image` attached to `network_name`."""
    client = get_docker_client(client)
    try:
        container = client.containers.run(image, name=name, network=network_name, detach=True, **kwargs)
    except APIError as e:
        raise DeploymentError(f"run {image} on {network_name}", str(e)) from e
    logger.info(f"Started {image} on network {network_name}")
    return container
