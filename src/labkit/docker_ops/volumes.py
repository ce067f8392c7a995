"""Named Docker volumes for the data persistence lab."""
import logging
from typing import List, Optional

from docker.errors import APIError, NotFound

from labkit.docker_ops.client import get_docker_client
from labkit.errors import DeploymentError

logger = logging.getLogger(__name__)


def ensure_volume(volume_name: str, driver: str = "local", client=None):
    """Return the volume called `volume_name`, creating it if it does not exist."""
    client = get_docker_client(client)
    try:
        volume = client.volumes.get(volume_name)
        logger.info(f"Docker volume {volume_name} already exists")
        return volume
    except NotFound:
        pass
    except APIError as e:
        raise DeploymentError(f"inspect volume {volume_name}", str(e)) from e

    try:
        volume = client.volumes.create(name=volume_name, driver=driver)
    except APIError as e:
        raise DeploymentError(f"create volume {volume_name}", str(e)) from e
    logger.info(f"Created Docker volume: {volume_name}")
    return volume


def list_volumes(client=None) -> List[str]:
    client = get_docker_client(client)
    try:
        volumes = client.volumes.list()
    except APIError as e:
        raise DeploymentError("list volumes", str(e)) from e
    return sorted(volume.name for volume in volumes)


def remove_volume(volume_name: str, force: bool = False, client=None) -> bool:
    client = get_docker_client(client)
    try:
        client.volumes.get(volume_name).remove(force=force)
    except NotFound:
        logger.info(f"Docker volume {volume_name} does not exist")
        return False
    except APIError as e:
        # typically the volume is still mounted by a container
        raise DeploymentError(f"remove volume {volume_name}", str(e)) from e
    logger.info(f"Removed Docker volume: {volume_name}")
    return True


def run_with_volume(image: str, volume_name: str, mount_path: str,
                    command: Optional[str] = None, name: Optional[str] = None, client=None):
    """Start a detached container from `image` with `volume_name` mounted at `mount_path`."""
    client = get_docker_client(client)
    try:
        container = client.containers.run(
            image,
            command=command,
            name=name,
            volumes={volume_name: {'bind': mount_path, 'mode': 'rw'}},
            detach=True,
        )
    except APIError as e:
        raise DeploymentError(f"run {image} with volume {volume_name}", str(e)) from e
    logger.info(f"Started {image} with {volume_name} mounted at {mount_path}")
    return container
