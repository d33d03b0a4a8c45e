"""Secret resolution from the environment or AWS SSM Parameter Store.

Stripe keys are read from an environment variable when one is set (local
development, tests) and otherwise from an SSM SecureString parameter under
``/piecefund/{env}/stripe/``.
"""

import os
from functools import lru_cache

import boto3
from botocore.exceptions import ClientError

from piecefund.utils.logging import get_logger

logger = get_logger(__name__)

# AWS error code -> operator hint appended to the failure message
_FAILURE_HINTS: dict[str, str] = {
    "ParameterNotFound": "parameter not found",
    "AccessDeniedException": "access denied; check IAM permissions for ssm:GetParameter",
}


class SSMServiceError(Exception):
    """A secret could not be resolved."""


class SSMService:
    """Resolves secrets, caching SSM lookups for the process lifetime.

    Usage:
        ssm = get_ssm_service()
        secret = ssm.get_secret(
            "STRIPE_WEBHOOK_SECRET", "/piecefund/dev/stripe/webhook_secret"
        )
    """

    def __init__(self) -> None:
        self._client = boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def get_secret(self, env_var: str, parameter_name: str) -> str:
        """Resolve a secret, preferring a non-empty environment variable.

        Raises:
            SSMServiceError: If the secret is in neither place.
        """
        override = os.environ.get(env_var)
        if override:
            return override
        return self.get_parameter(parameter_name)

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Fetch and decrypt one parameter.

        Args:
            name: Full parameter path
            use_cache: Serve a previously fetched value without calling SSM

        Raises:
            SSMServiceError: If the parameter cannot be retrieved.
        """
        if use_cache and name in self._cache:
            return self._cache[name]

        logger.info("Fetching SSM parameter: %s", name)
        try:
            response = self._client.get_parameter(Name=name, WithDecryption=True)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            hint = _FAILURE_HINTS.get(code, str(e))
            raise SSMServiceError(f"SSM parameter {name}: {hint}") from e

        self._cache[name] = response["Parameter"]["Value"]
        return self._cache[name]


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance."""
    return SSMService()
