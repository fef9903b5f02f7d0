"""Secrets from AWS SSM Parameter Store.

Holibayt keeps its Stripe credentials as SecureString parameters under
``/holibayt/{environment}/stripe/``. Values are decrypted on first use and
kept for the life of the process (one Lambda container).
"""

import os
from functools import lru_cache
from typing import ClassVar

import boto3
from botocore.exceptions import ClientError

from shared.utils.logging import get_logger

logger = get_logger(__name__)

PARAMETER_ROOT = "/holibayt"


def parameter_path(environment: str, *parts: str) -> str:
    """Build a parameter name, e.g. ``/holibayt/dev/stripe/secret_key``."""
    return "/".join([PARAMETER_ROOT, environment, *parts])


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""


class SSMService:
    """Cached reader of SecureString parameters.

    Usage:
        ssm = get_ssm_service()
        secret_key = ssm.get_parameter(parameter_path("dev", "stripe", "secret_key"))
    """

    _instance: ClassVar["SSMService | None"] = None
    _cache: ClassVar[dict[str, str]] = {}

    def __init__(self, region_name: str | None = None) -> None:
        self._client = boto3.client(
            "ssm", region_name=region_name or os.environ.get("AWS_DEFAULT_REGION")
        )

    @classmethod
    def get_instance(cls) -> "SSMService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Return the decrypted value of ``name``.

        Raises:
            SSMServiceError: Missing parameter, denied access or any other
                SSM failure
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error("SSM lookup of %s failed: %s", name, error_code)
            if error_code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            if error_code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter {name}; "
                    "the function role needs ssm:GetParameter and kms:Decrypt"
                ) from e
            raise SSMServiceError(f"Failed to retrieve SSM parameter {name}: {e}") from e

        value = response["Parameter"]["Value"]
        self._cache[name] = value
        logger.info("Loaded SSM parameter %s", name)
        return value

    def clear_cache(self) -> None:
        """Forget loaded values, e.g. after a key rotation."""
        self._cache.clear()


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService.get_instance()
