"""
Parameter and secret lookups used to complete the runtime configuration.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..models.config import Configuration
from ..utils.error_handling import ConfigError

logger = logging.getLogger(__name__)


class ParameterStore:
    """Read-only access to SSM Parameter Store."""

    def __init__(self, client):
        self.client = client

    def get_parameter(self, name: str, with_decryption: bool = False) -> str:
        """
        Fetch a parameter value.

        Raises:
            ConfigError: If the parameter is missing or cannot be read
        """
        try:
            response = self.client.get_parameter(Name=name, WithDecryption=with_decryption)
        except (ClientError, BotoCoreError) as e:
            raise ConfigError(f"Failed to get parameter {name}: {e}", e)

        value = response.get("Parameter", {}).get("Value")
        if not value:
            raise ConfigError(f"Parameter {name} has no value")
        return value


class SecretProvider:
    """Read-only access to Secrets Manager."""

    def __init__(self, client):
        self.client = client

    def get_secret(self, name: str) -> str:
        """
        Fetch the current string value of a secret.

        Raises:
            ConfigError: If the secret is missing or has no string value
        """
        try:
            response = self.client.get_secret_value(
                SecretId=name, VersionStage="AWSCURRENT"
            )
        except (ClientError, BotoCoreError) as e:
            raise ConfigError(f"Failed to get secret {name}: {e}", e)

        value = response.get("SecretString")
        if not value:
            raise ConfigError(f"Secret {name} has no string value")
        return value


def resolve_runtime_values(
    config: Configuration,
    parameters: Optional[ParameterStore] = None,
    secrets: Optional[SecretProvider] = None,
    session=None,
    include_secrets: bool = True,
) -> Configuration:
    """
    Fill in the bucket name and email password from AWS lookups.

    Values already present in the configuration are left untouched, and
    clients are only created for lookups that are actually needed. With
    include_secrets=False the password lookup is skipped.

    Raises:
        ConfigError: If a required lookup fails
    """
    storage = config.storage
    notifier = config.notifier

    if storage.type == "s3" and not storage.bucket:
        if not storage.bucket_parameter:
            raise ConfigError("No S3 bucket or bucket parameter configured")
        if parameters is None:
            session = session or boto3.session.Session(region_name=storage.region)
            parameters = ParameterStore(session.client("ssm"))
        storage.bucket = parameters.get_parameter(storage.bucket_parameter)
        logger.info(f"Resolved S3 bucket from parameter {storage.bucket_parameter}")

    if include_secrets and not notifier.password:
        if not notifier.password_secret:
            raise ConfigError("No email password or password secret configured")
        if secrets is None:
            session = session or boto3.session.Session(region_name=storage.region)
            secrets = SecretProvider(session.client("secretsmanager"))
        notifier.password = secrets.get_secret(notifier.password_secret)
        logger.info(f"Resolved email password from secret {notifier.password_secret}")

    return config
