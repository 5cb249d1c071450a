"""AWS Secrets Manager client wrapper."""
import os
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config_loader import get_aws_defaults
from .errors import (
    VaultAccessError,
    VaultConflictError,
    VaultError,
    VaultGenericError,
    VaultNotFoundError,
)
from .models import AwsScopeOptions

logger = logging.getLogger(__name__)

# Checked in order, first one set wins
ENDPOINT_ENV_VARS = ("AWS_ENDPOINT_URL", "AWS_SECRETS_MANAGER_ENDPOINT")

# Any of these set means boto3 already has a profile or region from the environment
PROFILE_ENV_VARS = ("AWS_PROFILE", "AWS_ACCESS_KEY_ID")
REGION_ENV_VARS = ("AWS_REGION", "AWS_DEFAULT_REGION")

CONFLICT_CODES = {"AlreadyExistsException", "ResourceExistsException"}
NOT_FOUND_CODES = {"ResourceNotFoundException"}
ACCESS_CODES = {
    "AccessDeniedException",
    "AccessDenied",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "InvalidSignatureException",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "ExpiredTokenException",
    "NoCredentialsError",
    "PartialCredentialsError",
    "ProfileNotFound",
    "NoRegionError",
    "EndpointConnectionError",
}


def _error_code(error: Any) -> str:
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        code = (response.get("Error") or {}).get("Code")
        if code:
            return code
    for attr in ("code", "name"):
        value = getattr(error, attr, None)
        if isinstance(value, str) and value:
            return value
    return type(error).__name__


def _error_message(error: Any) -> str:
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        message = (response.get("Error") or {}).get("Message")
        if message:
            return message
    return str(error)


def translate_vault_error(error: Any, secret_name: Optional[str] = None) -> VaultError:
    """
    Map a raw boto3/botocore error onto one of the VaultError variants.

    Only the error's identifying code is inspected, so any object exposing a
    botocore-style ``response`` dict or a ``code``/``name`` attribute works.

    Args:
        error: The raised error
        secret_name: Secret the call was about, used in the message

    Returns:
        VaultError subclass instance (not raised)
    """
    code = _error_code(error)
    message = _error_message(error)
    label = f' for "{secret_name}"' if secret_name else ""

    if code in CONFLICT_CODES:
        return VaultConflictError(f"Secret{label} already exists.", code)
    if code in NOT_FOUND_CODES:
        return VaultNotFoundError(f"Secret{label} was not found.", code)
    if code in ACCESS_CODES:
        return VaultAccessError(
            message or "Access denied while calling AWS Secrets Manager. Verify IAM permissions.",
            code,
        )
    if code == "InvalidRequestException":
        return VaultGenericError(message or "Invalid request to AWS Secrets Manager.", code)
    return VaultGenericError(message or code, code)


def get_endpoint_url(configured: Optional[str] = None) -> Optional[str]:
    """Endpoint override for local emulators: environment first, then config file."""
    for var in ENDPOINT_ENV_VARS:
        value = os.getenv(var)
        if value:
            return value
    return configured


def _config_default(value: Optional[str], env_vars) -> Optional[str]:
    """Use a config file value only when the environment does not already decide it."""
    if any(os.getenv(var) for var in env_vars):
        return None
    return value


class AWSSecretClient:
    """Wrapper around the boto3 Secrets Manager and STS clients."""

    def __init__(self, scope: Optional[AwsScopeOptions] = None):
        self.scope = scope or AwsScopeOptions()
        self._settings: Optional[Dict[str, Optional[str]]] = None
        self._session = None
        self._client = None

    @property
    def settings(self) -> Dict[str, Optional[str]]:
        """Profile, region and endpoint after applying config file defaults."""
        if self._settings is None:
            defaults = get_aws_defaults()
            self._settings = {
                "profile": self.scope.profile
                or _config_default(defaults["profile"], PROFILE_ENV_VARS),
                "region": self.scope.region
                or _config_default(defaults["region"], REGION_ENV_VARS),
                "endpoint_url": get_endpoint_url(defaults["endpoint_url"]),
            }
        return self._settings

    @property
    def session(self) -> boto3.session.Session:
        """Lazy-initialize session."""
        if self._session is None:
            settings = self.settings
            logger.debug(
                f"Creating AWS session (profile={settings['profile'] or 'default chain'}, "
                f"region={settings['region'] or 'unset'}, "
                f"endpoint={'set' if settings['endpoint_url'] else 'unset'})"
            )
            self._session = boto3.session.Session(
                profile_name=settings["profile"],
                region_name=settings["region"],
            )
        return self._session

    @property
    def client(self):
        """Lazy-initialize the secretsmanager client."""
        if self._client is None:
            self._client = self.session.client(
                "secretsmanager", endpoint_url=self.settings["endpoint_url"]
            )
        return self._client

    def ensure_connected(self) -> Dict[str, Any]:
        """
        Verify credentials with STS GetCallerIdentity.

        Returns:
            The caller identity response

        Raises:
            VaultError: If the session cannot be built or the identity check fails
        """
        try:
            sts = self.session.client("sts", endpoint_url=self.settings["endpoint_url"])
            identity = sts.get_caller_identity()
        except (ClientError, BotoCoreError) as e:
            raise translate_vault_error(e) from e
        logger.debug(f"Connected to AWS as {identity.get('Arn', 'unknown')}")
        return identity

    def connect(self):
        """Check identity, then return the secretsmanager client."""
        self.ensure_connected()
        try:
            return self.client
        except (ClientError, BotoCoreError) as e:
            raise translate_vault_error(e) from e
