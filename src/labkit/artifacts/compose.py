"""Docker Compose service definitions."""
import re
from typing import Any, Dict, List, Optional, Union

import yaml

from labkit.errors import ArtifactValidationError

PORT_PATTERN = re.compile(
    # IP:HOST:CONTAINER, IP::CONTAINER, HOST:CONTAINER or CONTAINER
    r"^(?:(?P<ip>\d{1,3}(?:\.\d{1,3}){3}|\[[0-9a-fA-F:]+\]):(?P<ip_host>\d+(?:-\d+)?)?:"
    r"|(?P<host>\d+(?:-\d+)?):)?"
    r"(?P<container>\d+(?:-\d+)?)"
    r"(?:/(?P<proto>tcp|udp|sctp))?$"
)


def build_web_redis_compose(web_port: int = 5000, redis_image: str = "redis",
                            build_context: str = ".",
                            environment: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """The two-service stack: a web app built locally and a Redis it depends on."""
    web: Dict[str, Any] = {
        "build": build_context,
        "ports": [f"{web_port}:{web_port}"],
        "depends_on": ["redis"],
    }
    if environment:
        web["environment"] = dict(environment)
    return {
        "services": {
            "web": web,
            "redis": {
                "image": redis_image,
            },
        }
    }


def render_compose(compose: Dict[str, Any]) -> str:
    return yaml.safe_dump(compose, sort_keys=False, default_flow_style=False)


def load_compose(text: str) -> Any:
    return yaml.safe_load(text)


def _port_numbers(port_range: str) -> List[int]:
    numbers = []
    for part in port_range.split("-"):
        numbers.append(int(part))
    return numbers


def _validate_port(service: str, port: Any) -> List[str]:
    if isinstance(port, dict):
        # long syntax
        target = port.get("target")
        if not isinstance(target, int) or not 1 <= target <= 65535:
            return [f"service '{service}' has invalid port target {target!r}"]
        return []

    match = PORT_PATTERN.match(str(port))
    if not match:
        return [f"service '{service}' has malformed port mapping {port!r}"]

    problems = []
    for group in ("ip_host", "host", "container"):
        port_range = match.group(group)
        if port_range is None:
            continue
        for number in _port_numbers(port_range):
            if not 1 <= number <= 65535:
                problems.append(f"service '{service}' port {number} is out of range")
    return problems


def _dependencies(service_def: Dict[str, Any]) -> List[str]:
    depends_on = service_def.get("depends_on") or []
    if isinstance(depends_on, dict):
        return list(depends_on.keys())
    return list(depends_on)


def _find_cycle(graph: Dict[str, List[str]]) -> List[str]:
    """Return one dependency cycle as a path, or [] when the graph is acyclic."""
    visiting, done = set(), set()
    stack: List[str] = []

    def visit(node: str) -> List[str]:
        visiting.add(node)
        stack.append(node)
        for dep in graph.get(node, []):
            if dep in visiting:
                return stack[stack.index(dep):] + [dep]
            if dep not in done and dep in graph:
                cycle = visit(dep)
                if cycle:
                    return cycle
        visiting.discard(node)
        done.add(node)
        stack.pop()
        return []

    for node in graph:
        if node not in done:
            cycle = visit(node)
            if cycle:
                return cycle
    return []


def _named_volumes(service_def: Dict[str, Any]) -> List[str]:
    names = []
    for volume in service_def.get("volumes") or []:
        if isinstance(volume, dict):
            if volume.get("type", "volume") == "volume" and volume.get("source"):
                names.append(volume["source"])
            continue
        source = str(volume).split(":", 1)[0]
        # bind mounts are paths, anonymous volumes have no source
        if ":" in str(volume) and not source.startswith((".", "/", "~", "$")):
            names.append(source)
    return names


def _networks(service_def: Dict[str, Any]) -> List[str]:
    networks = service_def.get("networks") or []
    if isinstance(networks, dict):
        return list(networks.keys())
    return list(networks)


def _top_level_names(compose: Dict[str, Any], section: str, problems: List[str]) -> set:
    declared = compose.get(section) or {}
    if not isinstance(declared, dict):
        problems.append(f"top-level '{section}' must be a mapping")
        return set()
    return set(declared.keys())


def validate_compose(compose: Union[str, Dict[str, Any]]) -> List[str]:
    """
    Validate a Compose file.

    :param compose: Parsed Compose mapping or YAML text.
    :return: A list of problems; empty when the file is valid.
    """
    if isinstance(compose, str):
        try:
            compose = load_compose(compose)
        except yaml.YAMLError as e:
            return [f"compose file is not valid YAML: {e}"]

    if not isinstance(compose, dict):
        return ["compose file must be a mapping"]

    services = compose.get("services")
    if not isinstance(services, dict) or not services:
        return ["compose file must define at least one service under 'services'"]

    problems = []
    declared_volumes = _top_level_names(compose, "volumes", problems)
    declared_networks = _top_level_names(compose, "networks", problems) | {"default"}
    graph: Dict[str, List[str]] = {}

    for name, service_def in services.items():
        if not isinstance(service_def, dict):
            problems.append(f"service '{name}' must be a mapping")
            continue
        if "image" not in service_def and "build" not in service_def:
            problems.append(f"service '{name}' needs either 'image' or 'build'")

        for port in service_def.get("ports") or []:
            problems.extend(_validate_port(name, port))

        deps = _dependencies(service_def)
        graph[name] = deps
        for dep in deps:
            if dep not in services:
                problems.append(f"service '{name}' depends on undefined service '{dep}'")

        for volume in _named_volumes(service_def):
            if volume not in declared_volumes:
                problems.append(f"service '{name}' uses undeclared volume '{volume}'")

        for network in _networks(service_def):
            if network not in declared_networks:
                problems.append(f"service '{name}' uses undeclared network '{network}'")

    cycle = _find_cycle(graph)
    if cycle:
        problems.append(f"dependency cycle: {' -> '.join(cycle)}")
    return problems


def ensure_valid_compose(compose: Union[str, Dict[str, Any]]) -> None:
    problems = validate_compose(compose)
    if problems:
        raise ArtifactValidationError("compose file", problems)
