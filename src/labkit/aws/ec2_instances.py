"""EC2 instances bootstrapped with user-data scripts."""
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

import requests
from botocore.exceptions import ClientError

from labkit.artifacts.user_data import encode_user_data
from labkit.aws.clients import get_ec2_client
from labkit.config.settings import get_settings
from labkit.errors import DeploymentError
from labkit.utils.decorators import deployment_step

logger = logging.getLogger(__name__)


def ensure_web_security_group(group_name: str, vpc_id: Optional[str] = None,
                              ports: Iterable[int] = (22, 80), ec2_client=None) -> str:
    """Reuse the security group called `group_name` or create it with the given ports open."""
    ec2_client = ec2_client or get_ec2_client()
    filters = [{'Name': 'group-name', 'Values': [group_name]}]
    if vpc_id:
        filters.append({'Name': 'vpc-id', 'Values': [vpc_id]})

    response = ec2_client.describe_security_groups(Filters=filters)
    if response['SecurityGroups']:
        sg_id = response['SecurityGroups'][0]['GroupId']
        logger.info(f"Using existing security group: {sg_id}")
        return sg_id

    create_kwargs = {
        'GroupName': group_name,
        'Description': f"Web access for {group_name}",
    }
    if vpc_id:
        create_kwargs['VpcId'] = vpc_id

    try:
        sg_id = ec2_client.create_security_group(**create_kwargs)['GroupId']
        ec2_client.authorize_security_group_ingress(
            GroupId=sg_id,
            IpPermissions=[
                {
                    'IpProtocol': 'tcp',
                    'FromPort': port,
                    'ToPort': port,
                    'IpRanges': [{'CidrIp': '0.0.0.0/0'}],
                }
                for port in ports
            ],
        )
    except ClientError as e:
        raise DeploymentError(f"create security group {group_name}", str(e)) from e

    logger.info(f"Created security group {group_name}: {sg_id}")
    return sg_id


def latest_amazon_linux_ami(ec2_client=None) -> str:
    """Newest available Amazon Linux 2023 AMI."""
    ec2_client = ec2_client or get_ec2_client()
    response = ec2_client.describe_images(
        Filters=[
            {'Name': 'name', 'Values': ['al2023-ami-2023*-x86_64']},
            {'Name': 'state', 'Values': ['available']},
        ],
        Owners=['amazon'],
    )
    images = sorted(response['Images'], key=lambda x: x.get('CreationDate', ''), reverse=True)
    if not images:
        raise DeploymentError("find Amazon Linux AMI", "no matching image in this region")

    ami_id = images[0]['ImageId']
    logger.info(f"Using Amazon Linux AMI: {ami_id}")
    return ami_id


@deployment_step("launch EC2 instance")
def launch_instance(ami_id: str, user_data: str, instance_type: Optional[str] = None,
                    key_name: Optional[str] = None,
                    security_group_ids: Optional[List[str]] = None,
                    name: Optional[str] = None, ec2_client=None) -> Dict[str, Any]:
    """
    Launch one instance that runs `user_data` on first boot.

    Returns the instance id and its initial state.
    """
    settings = get_settings()
    ec2_client = ec2_client or get_ec2_client()
    name = name or f"{settings.app_name}-web"

    run_kwargs = {
        'ImageId': ami_id,
        'InstanceType': instance_type or settings.ec2_instance_type,
        'MinCount': 1,
        'MaxCount': 1,
        'UserData': encode_user_data(user_data),
        'TagSpecifications': [{
            'ResourceType': 'instance',
            'Tags': [
                {'Key': 'Name', 'Value': name},
                {'Key': 'Project', 'Value': settings.app_name},
            ]
        }],
    }
    key_name = key_name or settings.ec2_key_name
    if key_name:
        run_kwargs['KeyName'] = key_name
    if security_group_ids:
        run_kwargs['SecurityGroupIds'] = security_group_ids

    try:
        response = ec2_client.run_instances(**run_kwargs)
    except ClientError as e:
        raise DeploymentError(f"launch instance {name}", str(e)) from e

    instance = response['Instances'][0]
    logger.info(f"Launched instance {instance['InstanceId']} ({run_kwargs['InstanceType']})")
    return {
        'instance_id': instance['InstanceId'],
        'state': instance['State']['Name'],
        'name': name,
    }


def public_address(instance_id: str, ec2_client=None) -> Optional[str]:
    ec2_client = ec2_client or get_ec2_client()
    reservations = ec2_client.describe_instances(InstanceIds=[instance_id])['Reservations']
    instance = reservations[0]['Instances'][0]
    return instance.get('PublicDnsName') or instance.get('PublicIpAddress')


def wait_for_http(url: str, timeout_seconds: int = 300, interval_seconds: int = 10) -> bool:
    """Poll `url` until it answers 200 or the timeout passes."""
    start_time = time.time()

    while time.time() - start_time < timeout_seconds:
        try:
            response = requests.get(url, timeout=5)
            if response.status_code == 200:
                logger.info(f"✅ {url} is responding")
                return True
        except requests.RequestException:
            # expected until the user-data script finishes
            pass

        time.sleep(interval_seconds)
        elapsed = int(time.time() - start_time)
        logger.info(f"⏳ Waiting for {url}... ({elapsed}s elapsed)")

    logger.warning(f"⚠️ Timeout waiting for {url} after {timeout_seconds}s")
    return False
