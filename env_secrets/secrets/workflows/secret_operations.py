"""Workflows for secret injection and Secrets Manager administration."""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from botocore.exceptions import BotoCoreError, ClientError

from ..domains.aws_client import AWSSecretClient, translate_vault_error
from ..domains.env_parser import parse_env_file
from ..domains.errors import VaultConflictError, VaultError, VaultNotFoundError
from ..domains.models import (
    AwsScopeOptions,
    SecretDeleteResult,
    SecretMetadata,
    SecretSummary,
    SecretWriteResult,
    UpsertOutcome,
    UpsertReport,
    format_date,
)
from ..domains.validators import parse_tags, validate_delete_options, validate_secret_name

logger = logging.getLogger(__name__)

VAULT_ERRORS = (ClientError, BotoCoreError)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def _tags_to_dict(tags: Optional[List[dict]]) -> Optional[Dict[str, str]]:
    if not tags:
        return None
    result = {tag["Key"]: tag["Value"] for tag in tags if tag.get("Key") and tag.get("Value")}
    return result or None


def fetch_secrets(secret_name: str, scope: Optional[AwsScopeOptions] = None) -> Dict[str, str]:
    """
    Fetch a JSON secret for injection into a process environment.

    Args:
        secret_name: Name or ARN of the secret
        scope: Profile/region to use

    Returns:
        Mapping of variable name to string value. Empty when AWS is unreachable,
        the secret is missing, or its value is not a JSON object; the cause is logged.
    """
    try:
        client = AWSSecretClient(scope).connect()
    except VaultError as e:
        logger.error(f"Unable to connect to AWS: {e}")
        return {}

    try:
        response = client.get_secret_value(SecretId=secret_name)
    except VAULT_ERRORS as e:
        error = translate_vault_error(e, secret_name)
        if isinstance(error, VaultNotFoundError):
            logger.error(f"{secret_name} not found")
        else:
            logger.error(str(error))
        return {}

    secret_string = response.get("SecretString")
    if not secret_string:
        logger.warning(f"Secret {secret_name} has no string value")
        return {}

    try:
        data = json.loads(secret_string)
    except json.JSONDecodeError as e:
        logger.error(f"Secret {secret_name} is not valid JSON: {e}")
        return {}

    if not isinstance(data, dict):
        logger.error(f"Secret {secret_name} must be a JSON object of key/value pairs")
        return {}

    return {str(key): _stringify(value) for key, value in data.items()}


def create_secret(
    name: str,
    value: str,
    description: Optional[str] = None,
    kms_key_id: Optional[str] = None,
    tags: Optional[List[str]] = None,
    scope: Optional[AwsScopeOptions] = None,
) -> SecretWriteResult:
    """Create a secret. Name and tags are validated before contacting AWS."""
    validate_secret_name(name)
    parsed_tags = parse_tags(tags)
    logger.debug(f"create_secret called (name={name}, tags={len(parsed_tags or [])})")

    client = AWSSecretClient(scope).connect()
    return _create(client, name, value, description, kms_key_id, parsed_tags)


def _create(client, name, value, description=None, kms_key_id=None, tags=None) -> SecretWriteResult:
    request: Dict[str, Any] = {"Name": name, "SecretString": value}
    if description:
        request["Description"] = description
    if kms_key_id:
        request["KmsKeyId"] = kms_key_id
    if tags:
        request["Tags"] = tags

    try:
        result = client.create_secret(**request)
    except VAULT_ERRORS as e:
        raise translate_vault_error(e, name) from e

    return SecretWriteResult(
        name=result.get("Name"), arn=result.get("ARN"), version_id=result.get("VersionId")
    )


def update_secret(
    name: str,
    value: Optional[str] = None,
    description: Optional[str] = None,
    kms_key_id: Optional[str] = None,
    scope: Optional[AwsScopeOptions] = None,
) -> SecretWriteResult:
    """Update a secret's value and/or metadata. Only supplied fields are sent."""
    validate_secret_name(name)
    logger.debug(f"update_secret called (name={name})")

    client = AWSSecretClient(scope).connect()

    request: Dict[str, Any] = {"SecretId": name}
    if value:
        request["SecretString"] = value
    if description:
        request["Description"] = description
    if kms_key_id:
        request["KmsKeyId"] = kms_key_id

    try:
        result = client.update_secret(**request)
    except VAULT_ERRORS as e:
        raise translate_vault_error(e, name) from e

    return SecretWriteResult(
        name=result.get("Name"), arn=result.get("ARN"), version_id=result.get("VersionId")
    )


def upsert_secrets(
    env_file: Union[str, Path],
    prefix: str,
    scope: Optional[AwsScopeOptions] = None,
) -> UpsertReport:
    """
    Import every KEY=value line of an env file as its own secret.

    Each secret is named ``prefix + KEY``. Missing secrets are created,
    existing ones get the value stored as a new version. Duplicate keys in
    the file are reported as skipped.

    Args:
        env_file: Path to the env file
        prefix: Name prefix, used verbatim (include a trailing '/' if wanted)
        scope: Profile/region to use

    Returns:
        UpsertReport with one outcome per key, in file order, skipped last
    """
    parsed = parse_env_file(env_file)
    names = [(f"{prefix}{entry.key}", entry) for entry in parsed.entries]
    for name, _ in names:
        validate_secret_name(name)
    logger.debug(f"upsert_secrets called (file={env_file}, prefix={prefix}, entries={len(names)})")

    report = UpsertReport()
    if not names:
        logger.warning(f"No secrets found in {env_file}")
    else:
        client = AWSSecretClient(scope).connect()
        for name, entry in names:
            try:
                result = _create(client, name, entry.value)
                report.outcomes.append(UpsertOutcome(name, "created", result.version_id))
            except VaultConflictError:
                try:
                    result = client.put_secret_value(SecretId=name, SecretString=entry.value)
                except VAULT_ERRORS as e:
                    raise translate_vault_error(e, name) from e
                report.outcomes.append(UpsertOutcome(name, "updated", result.get("VersionId")))

    for skipped in parsed.skipped:
        logger.warning(f"Skipping {skipped.key} on line {skipped.line}: {skipped.reason}")
        report.outcomes.append(UpsertOutcome(f"{prefix}{skipped.key}", "skipped"))

    return report


def _iter_secret_pages(client) -> Iterator[dict]:
    """Yield ListSecrets pages, following NextToken until exhausted."""
    next_token = None
    while True:
        request = {"NextToken": next_token} if next_token else {}
        page = client.list_secrets(**request)
        yield page
        next_token = page.get("NextToken")
        if not next_token:
            break


def list_secrets(
    prefix: Optional[str] = None,
    tags: Optional[List[str]] = None,
    scope: Optional[AwsScopeOptions] = None,
) -> List[SecretSummary]:
    """
    List secrets, filtered client-side.

    Args:
        prefix: Keep only names starting with this prefix
        tags: key=value tags that must all match exactly
        scope: Profile/region to use
    """
    required = parse_tags(tags) or []
    logger.debug(f"list_secrets called (prefix={prefix}, tags={len(required)})")

    client = AWSSecretClient(scope).connect()
    secrets = []

    try:
        for page in _iter_secret_pages(client):
            for secret in page.get("SecretList") or []:
                name = secret.get("Name") or ""
                if prefix and not name.startswith(prefix):
                    continue

                if required:
                    available = _tags_to_dict(secret.get("Tags")) or {}
                    if not all(available.get(tag["Key"]) == tag["Value"] for tag in required):
                        continue

                secrets.append(SecretSummary(
                    name=name,
                    arn=secret.get("ARN"),
                    description=secret.get("Description"),
                    last_changed_date=format_date(secret.get("LastChangedDate")),
                ))
    except VAULT_ERRORS as e:
        raise translate_vault_error(e) from e

    return secrets


def get_secret_metadata(name: str, scope: Optional[AwsScopeOptions] = None) -> SecretMetadata:
    """Describe a secret. The secret value is never requested."""
    validate_secret_name(name)
    logger.debug(f"get_secret_metadata called (name={name})")

    client = AWSSecretClient(scope).connect()

    try:
        result = client.describe_secret(SecretId=name)
    except VAULT_ERRORS as e:
        raise translate_vault_error(e, name) from e

    return SecretMetadata(
        name=result.get("Name"),
        arn=result.get("ARN"),
        description=result.get("Description"),
        kms_key_id=result.get("KmsKeyId"),
        created_date=format_date(result.get("CreatedDate")),
        last_changed_date=format_date(result.get("LastChangedDate")),
        last_accessed_date=format_date(result.get("LastAccessedDate")),
        deleted_date=format_date(result.get("DeletedDate")),
        version_ids_to_stages=result.get("VersionIdsToStages"),
        tags=_tags_to_dict(result.get("Tags")),
    )


def delete_secret(
    name: str,
    recovery_days: Optional[Any] = None,
    force_delete_without_recovery: bool = False,
    confirmed: bool = False,
    scope: Optional[AwsScopeOptions] = None,
) -> SecretDeleteResult:
    """
    Delete a secret.

    Args:
        name: Secret name
        recovery_days: Recovery window, an integer in [7, 30]
        force_delete_without_recovery: Delete immediately, no recovery window
        confirmed: Caller's explicit confirmation; required
        scope: Profile/region to use

    Raises:
        ConfirmationRequiredError: If not confirmed
        ValidationError: On a bad recovery window or conflicting flags
    """
    days = validate_delete_options(confirmed, recovery_days, force_delete_without_recovery)
    validate_secret_name(name)
    logger.debug(
        f"delete_secret called (name={name}, recovery_days={days}, "
        f"force={force_delete_without_recovery})"
    )

    client = AWSSecretClient(scope).connect()

    request: Dict[str, Any] = {"SecretId": name}
    if days is not None:
        request["RecoveryWindowInDays"] = days
    if force_delete_without_recovery:
        request["ForceDeleteWithoutRecovery"] = True

    try:
        result = client.delete_secret(**request)
    except VAULT_ERRORS as e:
        raise translate_vault_error(e, name) from e

    return SecretDeleteResult(
        name=result.get("Name"),
        arn=result.get("ARN"),
        deleted_date=format_date(result.get("DeletionDate")),
    )
