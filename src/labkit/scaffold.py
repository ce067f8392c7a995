"""Write the files for one lab task into a directory."""
import json
import logging
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Optional

import webapps
from labkit.artifacts.bucket_policy import build_public_read_policy, ensure_valid_bucket_policy, render_policy
from labkit.artifacts.compose import build_web_redis_compose, ensure_valid_compose, render_compose
from labkit.artifacts.dockerfile import (
    ensure_valid_dockerfile,
    render_node_multistage_dockerfile,
    render_python_dockerfile,
    render_python_multistage_dockerfile,
)
from labkit.artifacts.node_app import render_package_json, render_server_js
from labkit.artifacts.static_site import render_error_page, render_index_page
from labkit.artifacts.user_data import apache_user_data, docker_user_data, encode_user_data
from labkit.aws.ecr import repository_uri
from labkit.aws.ecs import TaskDefinitionConfig
from labkit.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

WEBAPP_REQUIREMENTS = "fastapi\nuvicorn\npydantic-settings\nredis\n"


def _ec2_apache(settings: Settings) -> Dict[str, str]:
    script = apache_user_data()
    encode_user_data(script)
    return {"user-data.sh": script}


def _ec2_docker(settings: Settings) -> Dict[str, str]:
    script = docker_user_data()
    encode_user_data(script)
    return {"user-data.sh": script}


def _s3_website(settings: Settings) -> Dict[str, str]:
    policy = build_public_read_policy(settings.s3_bucket_name)
    ensure_valid_bucket_policy(policy, settings.s3_bucket_name)
    return {
        "index.html": render_index_page(),
        "error.html": render_error_page(),
        "bucket-policy.json": render_policy(policy),
    }


def _python_image(dockerfile: str) -> Dict[str, str]:
    ensure_valid_dockerfile(dockerfile)
    return {"Dockerfile": dockerfile, "requirements.txt": WEBAPP_REQUIREMENTS}


def _flask_docker(settings: Settings) -> Dict[str, str]:
    return _python_image(render_python_dockerfile(
        port=settings.container_port, environment={"APP_VARIANT": "routed"}))


def _flask_multistage(settings: Settings) -> Dict[str, str]:
    return _python_image(render_python_multistage_dockerfile(
        port=settings.container_port, environment={"APP_VARIANT": "routed"}))


def _node_multistage(settings: Settings) -> Dict[str, str]:
    dockerfile = render_node_multistage_dockerfile()
    ensure_valid_dockerfile(dockerfile)
    return {
        "Dockerfile": dockerfile,
        "server.js": render_server_js(),
        "package.json": render_package_json(),
    }


def _compose_redis(settings: Settings) -> Dict[str, str]:
    compose = build_web_redis_compose(
        web_port=settings.container_port,
        environment={"APP_VARIANT": "counter", "REDIS_HOST": "redis"},
    )
    ensure_valid_compose(compose)
    files = _python_image(render_python_dockerfile(port=settings.container_port))
    files["compose.yaml"] = render_compose(compose)
    return files


def _ecs_push(settings: Settings) -> Dict[str, str]:
    image = repository_uri(settings.account_id, settings.aws_region, settings.ecr_repo_name)
    task_definition = TaskDefinitionConfig(
        family=f"{settings.app_name}-web",
        image=image,
        container_port=settings.container_port,
        environment={"APP_VARIANT": "routed"},
    )
    files = _python_image(render_python_dockerfile(port=settings.container_port))
    files["task-definition.json"] = json.dumps(task_definition.to_dict(), indent=4) + "\n"
    return files


TASKS: Dict[str, Callable[[Settings], Dict[str, str]]] = {
    "ec2-apache": _ec2_apache,
    "ec2-docker": _ec2_docker,
    "s3-website": _s3_website,
    "flask-docker": _flask_docker,
    "flask-multistage": _flask_multistage,
    "node-multistage": _node_multistage,
    "compose-redis": _compose_redis,
    "ecs-push": _ecs_push,
}

# tasks whose image is built from the sample web app sources
WEBAPP_TASKS = {"flask-docker", "flask-multistage", "compose-redis", "ecs-push"}


def _copy_webapp_sources(dest: Path) -> List[Path]:
    source = Path(webapps.__file__).parent
    target = dest / "webapps"
    shutil.copytree(source, target, dirs_exist_ok=True,
                    ignore=shutil.ignore_patterns("__pycache__", "*.pyc"))
    return sorted(path for path in target.rglob("*.py"))


def scaffold_task(task: str, dest: Path, overwrite: bool = False,
                  settings: Optional[Settings] = None) -> List[Path]:
    """
    Render every file of `task` into `dest`.

    Existing files are left alone unless `overwrite` is set; nothing is
    written when any target already exists.
    """
    if task not in TASKS:
        raise ValueError(f"Unknown task: {task}. Must be one of {sorted(TASKS)}")

    settings = settings or get_settings()
    dest = Path(dest)
    files = TASKS[task](settings)

    if not overwrite:
        existing = [name for name in files if (dest / name).exists()]
        if task in WEBAPP_TASKS and (dest / "webapps").exists():
            existing.append("webapps")
        if existing:
            raise FileExistsError(f"Refusing to overwrite existing files in {dest}: {', '.join(existing)}")

    dest.mkdir(parents=True, exist_ok=True)
    written = []
    for name, content in files.items():
        path = dest / name
        path.write_text(content, encoding="utf-8")
        written.append(path)

    if task in WEBAPP_TASKS:
        written.extend(_copy_webapp_sources(dest))

    logger.info(f"Scaffolded {task} into {dest} ({len(written)} files)")
    return written
