# src/labkit/config/settings.py
from functools import lru_cache
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MOCK_ACCOUNT_ID = "123456789012"


class Settings(BaseSettings):
    """
    Settings for the lab toolkit.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from labkit.config.settings import get_settings
        settings = get_settings()
        bucket_name = settings.s3_bucket_name
    """

    app_name: str = Field(
        default="labkit",
        description="Prefix used for names and tags of created resources"
    )

    # Deployment Mode
    deployment_mode: str = Field(
        default="aws-prod",
        description="Deployment mode: local-dev, aws-mock, or aws-prod"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL"
    )

    aws_account_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCOUNT_ID",
        description="AWS Account ID (auto-detected if not provided)"
    )

    # S3 static website
    s3_bucket_name: str = Field(
        default="labkit-static-site",
        description="Bucket that hosts the static website"
    )

    # ECR / ECS
    ecr_repo_name: str = Field(
        default="labkit-web",
        description="ECR repository the sample image is pushed to"
    )

    ecs_cluster_name: str = Field(
        default="labkit-cluster",
        description="ECS cluster the sample service runs in"
    )

    ecs_service_name: str = Field(
        default="labkit-web-service",
        description="ECS service name"
    )

    container_port: int = Field(
        default=5000,
        description="Port the sample web container listens on"
    )

    # EC2
    ec2_instance_type: str = Field(
        default="t2.micro",
        description="Instance type for the user-data labs (free tier eligible)"
    )

    ec2_key_name: Optional[str] = Field(
        default=None,
        description="Existing EC2 key pair for SSH access"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @validator('deployment_mode', pre=True)
    def normalize_deployment_mode(cls, v):
        """Normalize deployment mode values for backwards compatibility."""
        if v:
            mode_mapping = {
                "local-mock": "local-dev",
                "moto": "aws-mock",
                "cloud": "aws-prod",
            }
            return mode_mapping.get(v, v)
        return v

    @validator('deployment_mode')
    def validate_deployment_mode(cls, v):
        """Validate deployment mode is one of the allowed values."""
        valid_modes = ["local-dev", "aws-mock", "aws-prod"]
        if v not in valid_modes:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {valid_modes}")
        return v

    @validator('aws_endpoint_url', always=True)
    def set_endpoint_url_based_on_mode(cls, v, values):
        """Point aws-mock at a local moto server unless an endpoint was given."""
        if v is None and values.get('deployment_mode') == "aws-mock":
            return "http://localhost:5000"
        return v

    @property
    def uses_local_endpoint(self) -> bool:
        return bool(self.aws_endpoint_url) and self.deployment_mode in ["local-dev", "aws-mock"]

    @property
    def account_id(self) -> str:
        """Get AWS account ID with auto-detection fallback."""
        if self.aws_account_id:
            return self.aws_account_id

        if self.deployment_mode == "aws-prod":
            try:
                from labkit.aws.clients import get_sts_client
                return get_sts_client().get_caller_identity()['Account']
            except Exception:
                return MOCK_ACCOUNT_ID

        return MOCK_ACCOUNT_ID

    @property
    def ecr_registry(self) -> str:
        """Get ECR registry URL."""
        return f"{self.account_id}.dkr.ecr.{self.aws_region}.amazonaws.com"

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
