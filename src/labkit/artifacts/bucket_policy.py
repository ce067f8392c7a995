"""S3 bucket policy documents for static website hosting."""
import ipaddress
import json
import re
from typing import Any, Dict, List, Optional, Union

from labkit.errors import ArtifactValidationError

POLICY_VERSION = "2012-10-17"
SUPPORTED_POLICY_VERSIONS = ("2012-10-17", "2008-10-17")
S3_ARN_PREFIX = "arn:aws:s3:::"

BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")


def build_public_read_policy(bucket_name: str) -> Dict[str, Any]:
    """
    Build the policy that lets anyone read objects in `bucket_name`.

    :param bucket_name: The bucket serving the static website.
    :return: Policy document as a dict, ready for `put_bucket_policy`.
    """
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Sid": "PublicReadGetObject",
                "Effect": "Allow",
                "Principal": "*",
                "Action": "s3:GetObject",
                "Resource": f"{S3_ARN_PREFIX}{bucket_name}/*",
            }
        ],
    }


def render_policy(policy: Dict[str, Any]) -> str:
    return json.dumps(policy, indent=4) + "\n"


def validate_bucket_name(name: str) -> List[str]:
    """Check a bucket name against the S3 general purpose bucket naming rules."""
    problems = []
    if not 3 <= len(name) <= 63:
        problems.append(f"bucket name must be 3-63 characters long, got {len(name)}")
    if not BUCKET_NAME_PATTERN.match(name):
        problems.append(
            "bucket name may only contain lowercase letters, digits, dots and hyphens "
            "and must begin and end with a letter or digit"
        )
    if ".." in name:
        problems.append("bucket name must not contain two adjacent periods")
    try:
        ipaddress.IPv4Address(name)
        problems.append("bucket name must not be formatted as an IP address")
    except ValueError:
        pass
    if name.startswith("xn--"):
        problems.append("bucket name must not start with 'xn--'")
    if name.endswith("-s3alias"):
        problems.append("bucket name must not end with '-s3alias'")
    return problems


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    return [value]


def _bucket_from_resource(resource: str) -> str:
    return resource[len(S3_ARN_PREFIX):].split("/", 1)[0]


def _validate_statement(index: int, statement: Any, bucket_name: Optional[str]) -> List[str]:
    where = f"Statement[{index}]"
    if not isinstance(statement, dict):
        return [f"{where} must be an object"]

    problems = []
    effect = statement.get("Effect")
    if effect not in ("Allow", "Deny"):
        problems.append(f"{where}.Effect must be 'Allow' or 'Deny', got {effect!r}")

    if "Principal" not in statement and "NotPrincipal" not in statement:
        problems.append(f"{where} has no Principal")

    actions = statement.get("Action", statement.get("NotAction"))
    if actions is None:
        problems.append(f"{where} has no Action")
    else:
        for action in _as_list(actions):
            if not isinstance(action, str) or not (action == "*" or action.startswith("s3:")):
                problems.append(f"{where}.Action {action!r} is not an S3 action")

    resources = statement.get("Resource", statement.get("NotResource"))
    if resources is None:
        problems.append(f"{where} has no Resource")
    else:
        for resource in _as_list(resources):
            if not isinstance(resource, str) or not resource.startswith(S3_ARN_PREFIX):
                problems.append(f"{where}.Resource {resource!r} is not an S3 ARN")
            elif bucket_name and _bucket_from_resource(resource) != bucket_name:
                problems.append(f"{where}.Resource {resource!r} does not target bucket {bucket_name!r}")
    return problems


def validate_bucket_policy(policy: Union[str, Dict[str, Any]], bucket_name: Optional[str] = None) -> List[str]:
    """
    Validate a bucket policy document.

    :param policy: The policy as a dict or as JSON text.
    :param bucket_name: When given, every Resource must point at this bucket.
    :return: A list of problems; empty when the policy is valid.
    """
    if isinstance(policy, str):
        try:
            policy = json.loads(policy)
        except json.JSONDecodeError as e:
            return [f"policy is not valid JSON: {e}"]

    if not isinstance(policy, dict):
        return ["policy must be a JSON object"]

    problems = []
    version = policy.get("Version")
    if version not in SUPPORTED_POLICY_VERSIONS:
        problems.append(f"Version must be one of {list(SUPPORTED_POLICY_VERSIONS)}, got {version!r}")

    statements = policy.get("Statement")
    if not statements:
        problems.append("policy has no Statement")
        return problems

    for index, statement in enumerate(_as_list(statements)):
        problems.extend(_validate_statement(index, statement, bucket_name))
    return problems


def ensure_valid_bucket_policy(policy: Union[str, Dict[str, Any]], bucket_name: Optional[str] = None) -> None:
    problems = validate_bucket_policy(policy, bucket_name)
    if problems:
        raise ArtifactValidationError("bucket policy", problems)
