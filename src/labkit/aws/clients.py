"""boto3 clients for the services the labs touch, configured from settings."""
import logging
import os
from typing import Any, Dict, Optional

import boto3

from labkit.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

LAB_SERVICES = ("s3", "ec2", "ecr", "ecs", "sts")


class AWSClientManager:
    """
    Process-wide cache of boto3 clients.

    In aws-prod an `AWS_PROFILE` (e.g. an SSO login) wins over explicit keys;
    in local-dev and aws-mock every client is pointed at the local endpoint.
    """
    _instance: Optional["AWSClientManager"] = None

    def __init__(self, settings: Settings):
        self.settings = settings
        self._clients: Dict[str, Any] = {}
        logger.info(
            f"AWS clients: mode={settings.deployment_mode} region={settings.aws_region} "
            f"endpoint={settings.aws_endpoint_url if settings.uses_local_endpoint else 'default'}"
        )

    @classmethod
    def instance(cls) -> "AWSClientManager":
        if cls._instance is None:
            cls._instance = cls(get_settings())
        return cls._instance

    @classmethod
    def reset(cls):
        """Forget the cached manager so the next client re-reads settings."""
        cls._instance = None

    def _session(self) -> boto3.Session:
        profile = os.environ.get("AWS_PROFILE")
        if profile and self.settings.deployment_mode == "aws-prod":
            logger.debug(f"Using AWS profile {profile}")
            return boto3.Session(profile_name=profile, region_name=self.settings.aws_region)

        return boto3.Session(
            aws_access_key_id=self.settings.aws_access_key_id,
            aws_secret_access_key=self.settings.aws_secret_access_key,
            region_name=self.settings.aws_region,
        )

    def client(self, service_name: str) -> Any:
        if service_name not in LAB_SERVICES:
            raise ValueError(f"Unsupported AWS service: {service_name}. Must be one of {list(LAB_SERVICES)}")

        if service_name not in self._clients:
            endpoint_url = self.settings.aws_endpoint_url if self.settings.uses_local_endpoint else None
            self._clients[service_name] = self._session().client(service_name, endpoint_url=endpoint_url)
            logger.debug(f"Created {service_name} client")
        return self._clients[service_name]


def get_s3_client():
    return AWSClientManager.instance().client("s3")


def get_ec2_client():
    return AWSClientManager.instance().client("ec2")


def get_ecr_client():
    return AWSClientManager.instance().client("ecr")


def get_ecs_client():
    return AWSClientManager.instance().client("ecs")


def get_sts_client():
    """Used to look up the account id when AWS_ACCOUNT_ID is not set."""
    return AWSClientManager.instance().client("sts")
