"""
ECS task definitions, clusters and services for the sample web image.

Main pieces: TaskDefinitionConfig (a dataclass with Fargate defaults that
renders the register_task_definition payload) and three functions that each
perform one console step: ensure_cluster, register_task_definition,
ensure_service.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from labkit.aws.clients import get_ecs_client
from labkit.config.settings import get_settings
from labkit.errors import DeploymentError
from labkit.utils.decorators import deployment_step

logger = logging.getLogger(__name__)


@dataclass
class TaskDefinitionConfig:
    """Configuration for an ECS task definition with Fargate defaults."""
    family: str
    image: str
    container_port: int = 5000
    container_name: str = "web"
    cpu: str = "256"
    memory: str = "512"
    requires_compatibilities: List[str] = field(default_factory=lambda: ['FARGATE'])
    network_mode: str = 'awsvpc'
    execution_role_arn: Optional[str] = None
    task_role_arn: Optional[str] = None
    environment: Dict[str, str] = field(default_factory=dict)
    log_group: Optional[str] = None
    region: Optional[str] = None
    tags: List[Dict[str, str]] = field(default_factory=list)

    def __post_init__(self):
        if not self.tags:
            self.tags = [
                {'key': 'Name', 'value': self.family},
                {'key': 'Project', 'value': get_settings().app_name}
            ]

    def container_definition(self) -> Dict[str, Any]:
        container = {
            'name': self.container_name,
            'image': self.image,
            'essential': True,
            'portMappings': [{
                'containerPort': self.container_port,
                'hostPort': self.container_port,
                'protocol': 'tcp',
            }],
            'environment': [
                {'name': name, 'value': value} for name, value in self.environment.items()
            ],
        }
        if self.log_group:
            container['logConfiguration'] = {
                'logDriver': 'awslogs',
                'options': {
                    'awslogs-group': self.log_group,
                    'awslogs-region': self.region or get_settings().aws_region,
                    'awslogs-stream-prefix': 'ecs',
                }
            }
        return container

    def to_dict(self) -> Dict[str, Any]:
        """Convert to ECS task definition dictionary."""
        task_def = {
            'family': self.family,
            'networkMode': self.network_mode,
            'requiresCompatibilities': self.requires_compatibilities,
            'cpu': self.cpu,
            'memory': self.memory,
            'containerDefinitions': [self.container_definition()],
        }

        if self.execution_role_arn:
            task_def['executionRoleArn'] = self.execution_role_arn
        if self.task_role_arn:
            task_def['taskRoleArn'] = self.task_role_arn
        if self.tags:
            task_def['tags'] = self.tags

        return task_def


def ensure_cluster(cluster_name: str, ecs_client=None) -> str:
    """Return the ARN of an ACTIVE cluster named `cluster_name`, creating it if needed."""
    ecs_client = ecs_client or get_ecs_client()
    response = ecs_client.describe_clusters(clusters=[cluster_name])
    for cluster in response.get('clusters', []):
        if cluster['status'] == 'ACTIVE':
            logger.info(f"Using existing ECS cluster: {cluster['clusterArn']}")
            return cluster['clusterArn']

    try:
        cluster_arn = ecs_client.create_cluster(clusterName=cluster_name)['cluster']['clusterArn']
    except ClientError as e:
        raise DeploymentError(f"create ECS cluster {cluster_name}", str(e)) from e
    logger.info(f"Created ECS cluster: {cluster_arn}")
    return cluster_arn


def register_task_definition(config: TaskDefinitionConfig, ecs_client=None) -> str:
    ecs_client = ecs_client or get_ecs_client()
    try:
        response = ecs_client.register_task_definition(**config.to_dict())
    except ClientError as e:
        raise DeploymentError(f"register task definition {config.family}", str(e)) from e

    arn = response['taskDefinition']['taskDefinitionArn']
    logger.info(f"Registered task definition: {arn}")
    return arn


@deployment_step("deploy ECS service")
def ensure_service(cluster_name: str, service_name: str, task_definition_arn: str,
                   subnets: List[str], security_groups: List[str],
                   desired_count: int = 1, assign_public_ip: bool = True,
                   ecs_client=None) -> Dict[str, Any]:
    """Create the service, or point an existing one at `task_definition_arn`."""
    ecs_client = ecs_client or get_ecs_client()

    existing = ecs_client.describe_services(cluster=cluster_name, services=[service_name])
    active = [s for s in existing.get('services', []) if s.get('status') == 'ACTIVE']

    try:
        if active:
            service = ecs_client.update_service(
                cluster=cluster_name,
                service=service_name,
                taskDefinition=task_definition_arn,
                desiredCount=desired_count,
            )['service']
            logger.info(f"Updated ECS service {service_name} -> {task_definition_arn}")
        else:
            service = ecs_client.create_service(
                cluster=cluster_name,
                serviceName=service_name,
                taskDefinition=task_definition_arn,
                desiredCount=desired_count,
                launchType='FARGATE',
                networkConfiguration={
                    'awsvpcConfiguration': {
                        'subnets': subnets,
                        'securityGroups': security_groups,
                        'assignPublicIp': 'ENABLED' if assign_public_ip else 'DISABLED',
                    }
                },
            )['service']
            logger.info(f"Created ECS service {service_name} in {cluster_name}")
    except ClientError as e:
        raise DeploymentError(f"deploy ECS service {service_name}", str(e)) from e

    return {
        'service_arn': service['serviceArn'],
        'service_name': service['serviceName'],
        'task_definition': service['taskDefinition'],
        'desired_count': service['desiredCount'],
    }
