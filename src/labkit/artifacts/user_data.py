"""EC2 user-data bootstrap scripts."""
import base64
import logging
from textwrap import dedent
from typing import Dict

from labkit.errors import ArtifactValidationError

logger = logging.getLogger(__name__)

USER_DATA_LIMIT_BYTES = 16 * 1024
USER_DATA_WARN_BYTES = 15000

# Amazon Linux / RHEL and Debian / Ubuntu name the packages differently
_RPM_NAMES = {"apache_package": "httpd", "apache_service": "httpd", "docker_package": "docker"}
_DEB_NAMES = {"apache_package": "apache2", "apache_service": "apache2", "docker_package": "docker.io"}

PACKAGE_MANAGERS: Dict[str, Dict[str, str]] = {
    "yum": _RPM_NAMES,
    "dnf": _RPM_NAMES,
    "apt-get": _DEB_NAMES,
    "apt": _DEB_NAMES,
}


def _package_names(package_manager: str) -> Dict[str, str]:
    if package_manager not in PACKAGE_MANAGERS:
        raise ValueError(
            f"Unsupported package manager: {package_manager}. Must be one of {sorted(PACKAGE_MANAGERS)}"
        )
    return PACKAGE_MANAGERS[package_manager]


def apache_user_data(package_manager: str = "yum") -> str:
    """Install Apache and serve a page naming the instance."""
    names = _package_names(package_manager)
    return dedent(
        f"""\
        #!/bin/bash
        {package_manager} update -y
        {package_manager} install -y {names['apache_package']}
        systemctl start {names['apache_service']}
        systemctl enable {names['apache_service']}
        echo "<h1>Hello World from $(hostname -f)</h1>" > /var/www/html/index.html
        """
    )


def docker_user_data(package_manager: str = "yum", user: str = "ec2-user") -> str:
    """Install Docker and let `user` run it without sudo."""
    names = _package_names(package_manager)
    return dedent(
        f"""\
        #!/bin/bash
        {package_manager} update -y
        {package_manager} install -y {names['docker_package']}
        systemctl start docker
        systemctl enable docker
        usermod -a -G docker {user}
        """
    )


USER_DATA_SCRIPTS = {
    "apache": apache_user_data,
    "docker": docker_user_data,
}


def encode_user_data(script: str) -> str:
    """Base64-encode a user-data script, enforcing the EC2 size limit."""
    raw = script.encode("utf-8")
    if len(raw) > USER_DATA_LIMIT_BYTES:
        raise ArtifactValidationError(
            "user data",
            [f"script is {len(raw)} bytes, EC2 accepts at most {USER_DATA_LIMIT_BYTES}"],
        )
    if len(raw) > USER_DATA_WARN_BYTES:
        logger.warning(f"User data script is {len(raw)} bytes - approaching AWS 16KB limit")
    return base64.b64encode(raw).decode("utf-8")
