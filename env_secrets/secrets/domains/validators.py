"""Input validation shared by the CLI and the vault operations."""
import re
from typing import Any, List, Optional

from .errors import ConfirmationRequiredError, InvalidNameError, InvalidTagError, ValidationError

# AWS Secrets Manager naming rules: letters, digits and /_+=.@-
SECRET_NAME_PATTERN = re.compile(r"^[A-Za-z0-9/_+=.@-]+$")

MIN_RECOVERY_DAYS = 7
MAX_RECOVERY_DAYS = 30


def validate_secret_name(name: str) -> None:
    """
    Validate secret name matches AWS Secrets Manager requirements.

    Args:
        name: Secret name to validate

    Raises:
        InvalidNameError: If the name is empty or contains other characters
    """
    if not name or not SECRET_NAME_PATTERN.match(name):
        raise InvalidNameError(
            f'Invalid secret name "{name}". Use only letters, numbers, and /_+=.@- characters.'
        )


def parse_tags(tags: Optional[List[str]]) -> Optional[List[dict]]:
    """
    Parse key=value tag strings into the Secrets Manager Tag shape.

    The first '=' separates key from value, so values may contain '='.

    Returns:
        List of {"Key": ..., "Value": ...} dicts, or None when no tags given

    Raises:
        InvalidTagError: If a tag has no '=' or an empty key or value
    """
    if not tags:
        return None

    parsed = []
    for tag in tags:
        key, sep, value = tag.partition("=")
        key = key.strip()
        value = value.strip()
        if not sep or not key or not value:
            raise InvalidTagError(f"Invalid tag format: {tag}. Use key=value.")
        parsed.append({"Key": key, "Value": value})
    return parsed


def parse_recovery_days(value: Any) -> int:
    """Parse --recovery-days, which must be an integer between 7 and 30."""
    message = f"Recovery days must be an integer between {MIN_RECOVERY_DAYS} and {MAX_RECOVERY_DAYS}."
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, int):
        days = value
    else:
        try:
            days = int(str(value).strip())
        except ValueError:
            raise ValidationError(message)
    if days < MIN_RECOVERY_DAYS or days > MAX_RECOVERY_DAYS:
        raise ValidationError(message)
    return days


def validate_delete_options(
    confirmed: bool,
    recovery_days: Any = None,
    force_delete_without_recovery: bool = False,
) -> Optional[int]:
    """
    Check delete flags. Confirmation is checked before anything else.

    Returns:
        The parsed recovery window, or None when not given
    """
    if not confirmed:
        raise ConfirmationRequiredError("Delete requires --yes confirmation.")

    if recovery_days is not None and force_delete_without_recovery:
        raise ValidationError(
            "Use either --recovery-days or --force-delete-without-recovery, not both."
        )

    if recovery_days is None:
        return None
    return parse_recovery_days(recovery_days)
