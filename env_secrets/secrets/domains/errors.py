"""Error hierarchy for env-secrets.

Every error the CLI reports to the user derives from EnvSecretsError. Vault
errors carry the raw provider code they were translated from.
"""
from typing import Optional


class EnvSecretsError(Exception):
    """Base class for all env-secrets errors."""
    pass


class ValidationError(EnvSecretsError):
    """Bad flags or malformed input, raised before any network call."""
    pass


class MalformedLineError(ValidationError):
    """An env line without '=' or with an empty key."""

    def __init__(self, line: int, content: str):
        self.line = line
        self.content = content
        super().__init__(
            f"Malformed line {line}: '{content}'. Expected KEY=value."
        )


class InvalidNameError(ValidationError):
    pass


class InvalidTagError(ValidationError):
    pass


class ConfirmationRequiredError(ValidationError):
    pass


class SourceConflictError(EnvSecretsError):
    """Wrong number of secret value sources."""
    pass


class MultipleSourcesError(SourceConflictError):
    pass


class MissingSourceError(SourceConflictError):
    pass


class StdinUnavailableError(EnvSecretsError):
    pass


NoStdinError = StdinUnavailableError


class FileConflictError(EnvSecretsError):
    pass


class ProcessLaunchError(EnvSecretsError):
    pass


class ConfigError(EnvSecretsError):
    """Configuration error exception."""
    pass


class VaultError(EnvSecretsError):
    """Error returned by the vault provider, after translation."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class VaultNotFoundError(VaultError):
    pass


class VaultConflictError(VaultError):
    pass


class VaultAccessError(VaultError):
    pass


class VaultGenericError(VaultError):
    pass
