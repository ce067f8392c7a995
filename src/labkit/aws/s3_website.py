"""Functions for hosting a static website from an S3 bucket."""
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from botocore.exceptions import ClientError

from labkit.artifacts.bucket_policy import (
    build_public_read_policy,
    ensure_valid_bucket_policy,
    validate_bucket_name,
)
from labkit.artifacts.static_site import render_error_page, render_index_page
from labkit.aws.clients import get_s3_client
from labkit.errors import ArtifactValidationError, DeploymentError
from labkit.utils.decorators import deployment_step

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

# regions whose website endpoint uses a dot instead of a dash before the region
DOT_WEBSITE_REGIONS = {
    "ap-east-1", "ap-northeast-2", "ap-northeast-3", "ap-south-1", "ap-southeast-3",
    "ca-central-1", "cn-northwest-1", "eu-central-1", "eu-north-1", "eu-south-1",
    "eu-west-3", "me-south-1", "sa-east-1",
}


def create_bucket(bucket_name: str, region: str, s3_client: Optional["S3Client"] = None) -> None:
    """
    Create a bucket, treating one we already own as success.

    :param bucket_name: The name of the S3 bucket.
    :param region: Region to create it in.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    """
    problems = validate_bucket_name(bucket_name)
    if problems:
        raise ArtifactValidationError("bucket name", problems)

    s3_client = s3_client or get_s3_client()
    try:
        if region == "us-east-1":
            s3_client.create_bucket(Bucket=bucket_name)
        else:
            s3_client.create_bucket(
                Bucket=bucket_name,
                CreateBucketConfiguration={"LocationConstraint": region},
            )
        logger.info(f"Created S3 bucket: {bucket_name}")
    except ClientError as e:
        if e.response["Error"]["Code"] == "BucketAlreadyOwnedByYou":
            logger.info(f"S3 bucket already owned by you: {bucket_name}")
            return
        raise DeploymentError(f"create bucket {bucket_name}", str(e)) from e


def allow_public_policies(bucket_name: str, s3_client: Optional["S3Client"] = None) -> None:
    """Turn off Block Public Access so a public-read policy can be attached."""
    s3_client = s3_client or get_s3_client()
    try:
        s3_client.put_public_access_block(
            Bucket=bucket_name,
            PublicAccessBlockConfiguration={
                "BlockPublicAcls": False,
                "IgnorePublicAcls": False,
                "BlockPublicPolicy": False,
                "RestrictPublicBuckets": False,
            },
        )
    except ClientError as e:
        raise DeploymentError(f"unblock public access on {bucket_name}", str(e)) from e


def apply_bucket_policy(bucket_name: str, policy: Optional[Dict[str, Any]] = None,
                        s3_client: Optional["S3Client"] = None) -> Dict[str, Any]:
    """Attach `policy` (public read by default) after validating it against the bucket."""
    policy = policy or build_public_read_policy(bucket_name)
    ensure_valid_bucket_policy(policy, bucket_name)

    s3_client = s3_client or get_s3_client()
    try:
        s3_client.put_bucket_policy(Bucket=bucket_name, Policy=json.dumps(policy))
    except ClientError as e:
        raise DeploymentError(f"put bucket policy on {bucket_name}", str(e)) from e
    logger.info(f"Applied bucket policy to {bucket_name}")
    return policy


def enable_website(bucket_name: str, index_document: str = "index.html",
                   error_document: str = "error.html",
                   s3_client: Optional["S3Client"] = None) -> None:
    s3_client = s3_client or get_s3_client()
    try:
        s3_client.put_bucket_website(
            Bucket=bucket_name,
            WebsiteConfiguration={
                "IndexDocument": {"Suffix": index_document},
                "ErrorDocument": {"Key": error_document},
            },
        )
    except ClientError as e:
        raise DeploymentError(f"enable website hosting on {bucket_name}", str(e)) from e


def upload_page(bucket_name: str, object_key: str, html: str,
                s3_client: Optional["S3Client"] = None) -> None:
    """
    Upload an HTML page to an S3 bucket.

    :param bucket_name: The name of the S3 bucket.
    :param object_key: path to the object in the S3 bucket.
    :param html: The page contents.
    :param s3_client: An optional boto3 S3 client. If not provided, one will be created.
    """
    s3_client = s3_client or get_s3_client()
    s3_client.put_object(
        Bucket=bucket_name,
        Key=object_key,
        Body=html.encode("utf-8"),
        ContentType="text/html",
    )


def website_url(bucket_name: str, region: str) -> str:
    separator = "." if region in DOT_WEBSITE_REGIONS else "-"
    return f"http://{bucket_name}.s3-website{separator}{region}.amazonaws.com"


@deployment_step("publish static website")
def publish_static_site(bucket_name: str, region: str, index_html: Optional[str] = None,
                        error_html: Optional[str] = None,
                        s3_client: Optional["S3Client"] = None) -> str:
    """Create the bucket, open it for public reads, upload the pages and return the site URL."""
    s3_client = s3_client or get_s3_client()

    create_bucket(bucket_name, region, s3_client=s3_client)
    allow_public_policies(bucket_name, s3_client=s3_client)
    apply_bucket_policy(bucket_name, s3_client=s3_client)
    enable_website(bucket_name, s3_client=s3_client)
    upload_page(bucket_name, "index.html", index_html or render_index_page(), s3_client=s3_client)
    upload_page(bucket_name, "error.html", error_html or render_error_page(), s3_client=s3_client)

    url = website_url(bucket_name, region)
    logger.info(f"Static website available at {url}")
    return url
