"""Exceptions raised by the lab toolkit."""
from typing import Iterable, List


class LabkitError(Exception):
    """Base class for toolkit errors."""


class ArtifactValidationError(LabkitError):
    """A rendered or user-supplied artifact failed validation."""

    def __init__(self, artifact: str, problems: Iterable[str]):
        self.artifact = artifact
        self.problems: List[str] = list(problems)
        details = "; ".join(self.problems)
        super().__init__(f"Invalid {artifact}: {details}")


class DeploymentError(LabkitError):
    """An AWS or Docker step failed."""

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"{step} failed: {reason}")
