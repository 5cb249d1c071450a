"""Parser for KEY=value env files."""
import logging
import re
from pathlib import Path
from typing import Union

from .errors import MalformedLineError, ValidationError
from .models import ParseResult, SecretEntry, SkippedEntry

logger = logging.getLogger(__name__)

DUPLICATE_KEY = "duplicate key"

_EXPORT_PREFIX = re.compile(r"^export\s+")


def parse_env_lines(text: str) -> ParseResult:
    """
    Parse a block of KEY=value lines.

    Blank lines and '#' comments are ignored and a leading 'export ' is
    stripped. The first '=' separates key from value; both are trimmed. When a
    key repeats, the first occurrence wins and later ones are recorded in
    ``skipped``.

    Args:
        text: Raw file or stdin content

    Returns:
        ParseResult with entries in input order

    Raises:
        MalformedLineError: If a line has no '=' or an empty key
    """
    entries = []
    skipped = []
    seen = set()

    for number, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        body = _EXPORT_PREFIX.sub("", line, count=1)
        key, sep, value = body.partition("=")
        key = key.strip()
        if not sep or not key:
            raise MalformedLineError(number, raw)

        if key in seen:
            logger.debug(f"Skipping duplicate key {key} on line {number}")
            skipped.append(SkippedEntry(key=key, line=number, reason=DUPLICATE_KEY))
            continue

        seen.add(key)
        entries.append(SecretEntry(key=key, value=value.strip(), line=number))

    return ParseResult(entries=tuple(entries), skipped=tuple(skipped))


def parse_env_file(path: Union[str, Path]) -> ParseResult:
    """Read and parse an env file."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(f"Unable to read env file {path}: {e}")
    return parse_env_lines(content)
