# cli.py
import functools
import logging
from pathlib import Path

import click

from labkit.artifacts import bucket_policy, compose, dockerfile, node_app, static_site, user_data
from labkit.config.settings import get_settings
from labkit.errors import LabkitError
from labkit.scaffold import TASKS, scaffold_task

logger = logging.getLogger(__name__)

DOCKERFILE_VARIANTS = {
    "python": dockerfile.render_python_dockerfile,
    "python-multistage": dockerfile.render_python_multistage_dockerfile,
    "node-multistage": dockerfile.render_node_multistage_dockerfile,
}


def handle_errors(func):
    """Turn toolkit errors into clean CLI failures."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (LabkitError, FileExistsError) as e:
            raise click.ClickException(str(e)) from e
    return wrapper


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Render, validate and apply the artifacts of the AWS and Docker labs"""
    settings = get_settings()
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  Deployment Mode: {settings.deployment_mode}")
    click.echo(f"  AWS Region: {settings.aws_region}")
    click.echo(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    click.echo(f"  S3 Bucket: {settings.s3_bucket_name}")
    click.echo(f"  ECR Repository: {settings.ecr_repo_name}")
    click.echo(f"  ECS Cluster: {settings.ecs_cluster_name}")
    click.echo(f"  EC2 Instance Type: {settings.ec2_instance_type}")


# --- render ---------------------------------------------------------------

@cli.group()
def render():
    """Print an artifact to stdout"""


@render.command("bucket-policy")
@click.option("--bucket", default=None, help="Bucket name (defaults to S3_BUCKET_NAME)")
def render_bucket_policy(bucket):
    bucket = bucket or get_settings().s3_bucket_name
    click.echo(bucket_policy.render_policy(bucket_policy.build_public_read_policy(bucket)), nl=False)


@render.command("compose")
@click.option("--port", default=5000, show_default=True, type=int)
@click.option("--redis-image", default="redis", show_default=True)
def render_compose(port, redis_image):
    document = compose.build_web_redis_compose(web_port=port, redis_image=redis_image)
    click.echo(compose.render_compose(document), nl=False)


@render.command("dockerfile")
@click.option("--variant", type=click.Choice(sorted(DOCKERFILE_VARIANTS)), default="python", show_default=True)
def render_dockerfile(variant):
    click.echo(DOCKERFILE_VARIANTS[variant](), nl=False)


@render.command("user-data")
@click.option("--kind", type=click.Choice(sorted(user_data.USER_DATA_SCRIPTS)), default="apache", show_default=True)
@click.option("--package-manager", type=click.Choice(sorted(user_data.PACKAGE_MANAGERS)),
              default="yum", show_default=True)
def render_user_data(kind, package_manager):
    click.echo(user_data.USER_DATA_SCRIPTS[kind](package_manager=package_manager), nl=False)


@render.command("index-page")
@click.option("--title", default="My Static Website")
@click.option("--heading", default="Welcome to my website")
def render_index_page(title, heading):
    click.echo(static_site.render_index_page(title=title, heading=heading), nl=False)


@render.command("node-app")
@click.option("--port", default=3000, show_default=True, type=int)
def render_node_app(port):
    click.echo(node_app.render_server_js(port=port), nl=False)


# --- validate -------------------------------------------------------------

def _report(artifact: str, problems):
    if problems:
        for problem in problems:
            click.echo(f"  - {problem}", err=True)
        raise click.ClickException(f"{artifact} has {len(problems)} problem(s)")
    click.echo(f"✅ {artifact} is valid")


@cli.group()
def validate():
    """Check an artifact file"""


@validate.command("bucket-policy")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--bucket", default=None, help="Require every Resource to target this bucket")
def validate_bucket_policy(path, bucket):
    _report("bucket policy", bucket_policy.validate_bucket_policy(path.read_text(encoding="utf-8"), bucket))


@validate.command("compose")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate_compose(path):
    _report("compose file", compose.validate_compose(path.read_text(encoding="utf-8")))


@validate.command("dockerfile")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate_dockerfile(path):
    _report("Dockerfile", dockerfile.validate_dockerfile(path.read_text(encoding="utf-8")))


# --- scaffold -------------------------------------------------------------

@cli.command()
@click.argument("task", type=click.Choice(sorted(TASKS)))
@click.argument("dest", type=click.Path(file_okay=False, path_type=Path))
@click.option("--overwrite", is_flag=True, help="Replace files that already exist")
@handle_errors
def scaffold(task, dest, overwrite):
    """Write the files for one lab TASK into DEST"""
    for path in scaffold_task(task, dest, overwrite=overwrite):
        click.echo(str(path))


# --- AWS ------------------------------------------------------------------

@cli.group()
def s3():
    """S3 static website hosting"""


@s3.command("publish")
@click.option("--bucket", default=None, help="Bucket name (defaults to S3_BUCKET_NAME)")
@click.option("--index-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@click.option("--error-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@handle_errors
def s3_publish(bucket, index_file, error_file):
    """Create the bucket, make it public and upload the pages"""
    from labkit.aws.s3_website import publish_static_site

    settings = get_settings()
    url = publish_static_site(
        bucket or settings.s3_bucket_name,
        settings.aws_region,
        index_html=index_file.read_text(encoding="utf-8") if index_file else None,
        error_html=error_file.read_text(encoding="utf-8") if error_file else None,
    )
    click.echo(url)


@cli.group()
def ec2():
    """EC2 instances bootstrapped with user data"""


@ec2.command("launch")
@click.option("--kind", type=click.Choice(sorted(user_data.USER_DATA_SCRIPTS)), default="apache", show_default=True)
@click.option("--ami", default=None, help="AMI id (defaults to the newest Amazon Linux 2023)")
@click.option("--instance-type", default=None)
@click.option("--security-group", default=None, help="Security group name to reuse or create")
@handle_errors
def ec2_launch(kind, ami, instance_type, security_group):
    """Launch an instance running the chosen user-data script"""
    from labkit.aws.ec2_instances import ensure_web_security_group, latest_amazon_linux_ami, launch_instance

    settings = get_settings()
    sg_id = ensure_web_security_group(security_group or f"{settings.app_name}-web-sg")
    result = launch_instance(
        ami or latest_amazon_linux_ami(),
        user_data.USER_DATA_SCRIPTS[kind](),
        instance_type=instance_type,
        security_group_ids=[sg_id],
    )
    click.echo(f"{result['instance_id']} {result['state']}")


@cli.group()
def ecr():
    """ECR repositories and image pushes"""


@ecr.command("push")
@click.argument("local_image")
@click.option("--repo", default=None, help="Repository name (defaults to ECR_REPO_NAME)")
@click.option("--tag", default="latest", show_default=True)
@handle_errors
def ecr_push(local_image, repo, tag):
    """Tag LOCAL_IMAGE for ECR and push it"""
    from labkit.aws.ecr import push_image

    click.echo(push_image(local_image, repo_name=repo, tag=tag))


@cli.group()
def ecs():
    """ECS Fargate services"""


@ecs.command("deploy")
@click.option("--image", required=True, help="Image URI, usually the one printed by 'ecr push'")
@click.option("--subnet", "subnets", multiple=True, required=True)
@click.option("--security-group", "security_groups", multiple=True, required=True)
@click.option("--desired-count", default=1, show_default=True, type=int)
@handle_errors
def ecs_deploy(image, subnets, security_groups, desired_count):
    """Register a task definition for IMAGE and run it as a service"""
    from labkit.aws.ecs import TaskDefinitionConfig, ensure_cluster, ensure_service, register_task_definition

    settings = get_settings()
    ensure_cluster(settings.ecs_cluster_name)
    task_definition_arn = register_task_definition(TaskDefinitionConfig(
        family=f"{settings.app_name}-web",
        image=image,
        container_port=settings.container_port,
    ))
    result = ensure_service(
        settings.ecs_cluster_name,
        settings.ecs_service_name,
        task_definition_arn,
        subnets=list(subnets),
        security_groups=list(security_groups),
        desired_count=desired_count,
    )
    click.echo(result["service_arn"])


# --- Docker ---------------------------------------------------------------

@cli.group()
def docker():
    """Docker volumes and networks"""


@docker.command("network-create")
@click.argument("name")
@click.option("--driver", default="bridge", show_default=True)
@handle_errors
def docker_network_create(name, driver):
    from labkit.docker_ops.networks import ensure_network

    ensure_network(name, driver=driver)
    click.echo(name)


@docker.command("network-connect")
@click.argument("network")
@click.argument("container")
@handle_errors
def docker_network_connect(network, container):
    from labkit.docker_ops.networks import connect_container

    if not connect_container(network, container):
        raise click.ClickException(f"container {container} not found")
    click.echo(f"{container} -> {network}")


@docker.command("volume-create")
@click.argument("name")
@handle_errors
def docker_volume_create(name):
    from labkit.docker_ops.volumes import ensure_volume

    ensure_volume(name)
    click.echo(name)


@docker.command("volume-rm")
@click.argument("name")
@click.option("--force", is_flag=True)
@handle_errors
def docker_volume_rm(name, force):
    from labkit.docker_ops.volumes import remove_volume

    if not remove_volume(name, force=force):
        click.echo(f"{name} does not exist")


if __name__ == "__main__":
    cli()
