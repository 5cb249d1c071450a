"""Domain models for secret management."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


def format_date(value: Optional[datetime]) -> Optional[str]:
    """Render a vault timestamp as ISO-8601 UTC with milliseconds, e.g. 2024-01-02T03:04:05.000Z."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class OutputFormat(str, Enum):
    JSON = "json"
    TABLE = "table"


@dataclass(frozen=True)
class SecretEntry:
    """One KEY=value assignment parsed from a text block."""
    key: str
    value: str
    line: int


@dataclass(frozen=True)
class SkippedEntry:
    key: str
    line: int
    reason: str


@dataclass(frozen=True)
class ParseResult:
    entries: Tuple[SecretEntry, ...] = ()
    skipped: Tuple[SkippedEntry, ...] = ()

    def as_dict(self) -> Dict[str, str]:
        return {entry.key: entry.value for entry in self.entries}


@dataclass(frozen=True)
class AwsScopeOptions:
    """Profile/region pair selecting the AWS account and location."""
    profile: Optional[str] = None
    region: Optional[str] = None


@dataclass(frozen=True)
class InlineSource:
    value: str


@dataclass(frozen=True)
class StdinSource:
    pass


@dataclass(frozen=True)
class FileSource:
    path: str


# Exactly one way of supplying a secret value
SecretSource = Union[InlineSource, StdinSource, FileSource]


@dataclass(frozen=True)
class SecretSummary:
    name: str
    arn: Optional[str] = None
    description: Optional[str] = None
    last_changed_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "arn": self.arn,
            "description": self.description,
            "lastChangedDate": self.last_changed_date,
        }


@dataclass(frozen=True)
class SecretMetadata:
    """Descriptive and version metadata of a secret. Never holds the value."""
    name: Optional[str] = None
    arn: Optional[str] = None
    description: Optional[str] = None
    kms_key_id: Optional[str] = None
    created_date: Optional[str] = None
    last_changed_date: Optional[str] = None
    last_accessed_date: Optional[str] = None
    deleted_date: Optional[str] = None
    version_ids_to_stages: Optional[Dict[str, List[str]]] = None
    tags: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "arn": self.arn,
            "description": self.description,
            "kmsKeyId": self.kms_key_id,
            "createdDate": self.created_date,
            "lastChangedDate": self.last_changed_date,
            "lastAccessedDate": self.last_accessed_date,
            "deletedDate": self.deleted_date,
            "versionIdsToStages": self.version_ids_to_stages,
            "tags": self.tags,
        }


@dataclass(frozen=True)
class SecretWriteResult:
    """Result of a create or update call."""
    name: Optional[str] = None
    arn: Optional[str] = None
    version_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "arn": self.arn, "versionId": self.version_id}


@dataclass(frozen=True)
class SecretDeleteResult:
    name: Optional[str] = None
    arn: Optional[str] = None
    deleted_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "arn": self.arn, "deletedDate": self.deleted_date}


@dataclass(frozen=True)
class UpsertOutcome:
    name: str
    action: str  # "created", "updated" or "skipped"
    version_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "action": self.action, "versionId": self.version_id}


@dataclass
class UpsertReport:
    outcomes: List[UpsertOutcome] = field(default_factory=list)

    @property
    def created(self) -> List[UpsertOutcome]:
        return [o for o in self.outcomes if o.action == "created"]

    @property
    def updated(self) -> List[UpsertOutcome]:
        return [o for o in self.outcomes if o.action == "updated"]

    @property
    def skipped(self) -> List[UpsertOutcome]:
        return [o for o in self.outcomes if o.action == "skipped"]
