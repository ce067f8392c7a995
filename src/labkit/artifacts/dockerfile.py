"""
Dockerfile templates and a structural checker.

The templates cover the single-stage and multi-stage builds used in the
Docker labs. The checker parses a Dockerfile into instructions and reports
problems that would make `docker build` fail or produce an image that never
starts.
"""
import re
import shlex
from dataclasses import dataclass
from textwrap import dedent
from typing import Dict, List, Optional

from labkit.errors import ArtifactValidationError

KNOWN_INSTRUCTIONS = {
    "ADD", "ARG", "CMD", "COPY", "ENTRYPOINT", "ENV", "EXPOSE", "FROM",
    "HEALTHCHECK", "LABEL", "MAINTAINER", "ONBUILD", "RUN", "SHELL",
    "STOPSIGNAL", "USER", "VOLUME", "WORKDIR",
}

DIRECTIVE_PATTERN = re.compile(r"^#\s*(syntax|escape|check)\s*=", re.IGNORECASE)
EXPOSE_PATTERN = re.compile(r"^(\d+)(?:-(\d+))?(?:/(tcp|udp))?$")


@dataclass
class Instruction:
    keyword: str
    arguments: str
    line: int


def _environment_lines(environment: Optional[Dict[str, str]]) -> str:
    return "".join(f"ENV {name}={value}\n" for name, value in (environment or {}).items())


def render_python_dockerfile(app_module: str = "webapps.main:app", port: int = 5000,
                             python_version: str = "3.12",
                             environment: Optional[Dict[str, str]] = None) -> str:
    """Single-stage image for the sample web app."""
    text = dedent(
        f"""\
        FROM python:{python_version}-slim

        WORKDIR /app

        COPY requirements.txt .
        RUN pip install --no-cache-dir -r requirements.txt

        COPY . .

        EXPOSE {port}
        CMD ["uvicorn", "{app_module}", "--host", "0.0.0.0", "--port", "{port}"]
        """
    )
    return text.replace("EXPOSE", _environment_lines(environment) + "EXPOSE", 1)


def render_python_multistage_dockerfile(app_module: str = "webapps.main:app", port: int = 5000,
                                        python_version: str = "3.12",
                                        environment: Optional[Dict[str, str]] = None) -> str:
    """Build wheels in a full image, install them into a slim runtime image."""
    text = dedent(
        f"""\
        FROM python:{python_version} AS builder

        WORKDIR /build
        COPY requirements.txt .
        RUN pip wheel --no-cache-dir --wheel-dir /wheels -r requirements.txt

        FROM python:{python_version}-slim AS runtime

        WORKDIR /app
        COPY --from=builder /wheels /wheels
        RUN pip install --no-cache-dir /wheels/* && rm -rf /wheels

        COPY . .

        EXPOSE {port}
        CMD ["uvicorn", "{app_module}", "--host", "0.0.0.0", "--port", "{port}"]
        """
    )
    return text.replace("EXPOSE", _environment_lines(environment) + "EXPOSE", 1)


def render_node_multistage_dockerfile(node_version: str = "20", port: int = 3000) -> str:
    """Install dependencies in a full Node image, run from an alpine one."""
    return dedent(
        f"""\
        FROM node:{node_version} AS build

        WORKDIR /usr/src/app
        COPY package*.json ./
        RUN npm install --omit=dev
        COPY . .

        FROM node:{node_version}-alpine

        WORKDIR /usr/src/app
        COPY --from=build /usr/src/app .

        EXPOSE {port}
        CMD ["node", "server.js"]
        """
    )


def parse_dockerfile(text: str) -> List[Instruction]:
    """
    Split a Dockerfile into instructions.

    Handles comments, blank lines, parser directives and backslash line
    continuations. The escape directive is honoured.
    """
    lines = text.splitlines()
    escape = "\\"
    instructions: List[Instruction] = []

    index = 0
    # parser directives are only recognised before the first instruction or comment
    while index < len(lines) and DIRECTIVE_PATTERN.match(lines[index].strip()):
        name, value = lines[index].strip().lstrip("#").split("=", 1)
        if name.strip().lower() == "escape" and value.strip() in ("`", "\\"):
            escape = value.strip()
        index += 1

    buffer: List[str] = []
    start_line = 0
    while index < len(lines):
        raw = lines[index]
        stripped = raw.strip()
        index += 1

        if not buffer and (not stripped or stripped.startswith("#")):
            continue
        if buffer and (not stripped or stripped.startswith("#")):
            # blank lines and comments inside a continuation are dropped
            continue

        if not buffer:
            start_line = index

        if stripped.endswith(escape):
            buffer.append(stripped[:-1].rstrip())
            continue

        buffer.append(stripped)
        joined = " ".join(part for part in buffer if part)
        buffer = []
        keyword, _, arguments = joined.partition(" ")
        instructions.append(Instruction(keyword.upper(), arguments.strip(), start_line))

    if buffer:
        joined = " ".join(part for part in buffer if part)
        keyword, _, arguments = joined.partition(" ")
        instructions.append(Instruction(keyword.upper(), arguments.strip(), start_line))

    return instructions


def _from_stage_name(arguments: str) -> Optional[str]:
    tokens = [token for token in arguments.split() if not token.startswith("--")]
    if len(tokens) >= 3 and tokens[1].upper() == "AS":
        return tokens[2].lower()
    return None


def stage_names(text: str) -> List[Optional[str]]:
    """Name of every build stage in order; unnamed stages are None."""
    return [
        _from_stage_name(instruction.arguments)
        for instruction in parse_dockerfile(text)
        if instruction.keyword == "FROM"
    ]


def _copy_from(arguments: str) -> Optional[str]:
    try:
        tokens = shlex.split(arguments)
    except ValueError:
        tokens = arguments.split()
    for token in tokens:
        if token.startswith("--from="):
            return token.split("=", 1)[1]
    return None


def _validate_expose(instruction: Instruction) -> List[str]:
    problems = []
    for port in instruction.arguments.split():
        if port.startswith("$"):
            continue
        match = EXPOSE_PATTERN.match(port)
        if not match:
            problems.append(f"line {instruction.line}: invalid EXPOSE port {port!r}")
            continue
        for group in (match.group(1), match.group(2)):
            if group is not None and not 1 <= int(group) <= 65535:
                problems.append(f"line {instruction.line}: EXPOSE port {group} is out of range")
    return problems


def validate_dockerfile(text: str) -> List[str]:
    """
    Validate a Dockerfile.

    :param text: Dockerfile contents.
    :return: A list of problems; empty when the Dockerfile looks buildable.
    """
    instructions = parse_dockerfile(text)
    if not instructions:
        return ["Dockerfile has no instructions"]

    problems = []
    seen_from = False
    stages: List[Optional[str]] = []
    final_stage_has_command = False

    for instruction in instructions:
        keyword = instruction.keyword
        if keyword not in KNOWN_INSTRUCTIONS:
            problems.append(f"line {instruction.line}: unknown instruction {keyword!r}")
            continue

        if not seen_from and keyword not in ("FROM", "ARG"):
            problems.append(f"line {instruction.line}: {keyword} before the first FROM")
            continue

        if keyword == "FROM":
            if not instruction.arguments:
                problems.append(f"line {instruction.line}: FROM needs an image")
            name = _from_stage_name(instruction.arguments)
            if name and name in stages:
                problems.append(f"line {instruction.line}: duplicate stage name {name!r}")
            stages.append(name)
            seen_from = True
            final_stage_has_command = False
        elif keyword in ("CMD", "ENTRYPOINT"):
            final_stage_has_command = True
        elif keyword == "EXPOSE":
            problems.extend(_validate_expose(instruction))
        elif keyword == "COPY":
            source = _copy_from(instruction.arguments)
            if source is None:
                continue
            earlier = stages[:-1]
            if source.isdigit():
                if int(source) >= len(earlier):
                    problems.append(f"line {instruction.line}: COPY --from={source} refers to a later stage")
            elif source.lower() in stages[-1:]:
                problems.append(f"line {instruction.line}: COPY --from={source} refers to the current stage")
            elif source.lower() not in earlier and ":" not in source and "/" not in source:
                problems.append(f"line {instruction.line}: COPY --from={source} names no earlier stage")

    if not seen_from:
        problems.append("Dockerfile has no FROM instruction")
    elif not final_stage_has_command:
        problems.append("final stage has no CMD or ENTRYPOINT")
    return problems


def ensure_valid_dockerfile(text: str) -> None:
    problems = validate_dockerfile(text)
    if problems:
        raise ArtifactValidationError("Dockerfile", problems)
