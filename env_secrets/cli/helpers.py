"""Option resolution and secret value sources for CLI commands."""
import re
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, TextIO, Union

from ..secrets.domains.errors import MultipleSourcesError, NoStdinError, ValidationError
from ..secrets.domains.models import (
    AwsScopeOptions,
    FileSource,
    InlineSource,
    OutputFormat,
    SecretSource,
    StdinSource,
)
from .output import parse_output_format

Options = Union[Mapping[str, Any], Any]

_TRAILING_NEWLINE = re.compile(r"\r?\n\Z")


def _option(options: Optional[Options], key: str) -> Any:
    if options is None:
        return None
    if isinstance(options, Mapping):
        value = options.get(key)
    else:
        value = getattr(options, key, None)
    # Empty strings count as not given
    return value if value not in (None, "") else None


def resolve_aws_scope(
    local_options: Optional[Options],
    global_options: Union[Options, Callable[[], Options], None] = None,
) -> AwsScopeOptions:
    """
    Merge command-local and global --profile/--region flags.

    Each field independently takes the local value, else the global value,
    else None.

    Args:
        local_options: Mapping or namespace with the command's own flags
        global_options: Mapping or namespace with the top-level flags, or a
            callable returning one
    """
    if callable(global_options) and not isinstance(global_options, Mapping):
        global_options = global_options()

    return AwsScopeOptions(
        profile=_option(local_options, "profile") or _option(global_options, "profile"),
        region=_option(local_options, "region") or _option(global_options, "region"),
    )


def resolve_output_format(local: Optional[str], global_: Optional[str] = None) -> OutputFormat:
    """Local --output wins over the global one; table when neither is set."""
    return parse_output_format(local or global_ or OutputFormat.TABLE.value)


def _strip_trailing_newline(text: str) -> str:
    return _TRAILING_NEWLINE.sub("", text, count=1)


def select_secret_source(
    value: Optional[str] = None,
    use_stdin: bool = False,
    file_path: Optional[str] = None,
) -> Optional[SecretSource]:
    """
    Build the SecretSource for a combination of value flags.

    Returns:
        InlineSource, StdinSource or FileSource, or None when no flag is set

    Raises:
        MultipleSourcesError: If more than one flag is set
    """
    given = [bool(value), bool(use_stdin), bool(file_path)]
    if sum(given) > 1:
        raise MultipleSourcesError(
            "Use only one secret value source: --value, --value-stdin, or --file."
        )
    if use_stdin:
        return StdinSource()
    if file_path:
        return FileSource(file_path)
    if value:
        return InlineSource(value)
    return None


def read_stdin(stream: Optional[TextIO] = None) -> str:
    """Read all of stdin, dropping at most one trailing newline."""
    stream = stream or sys.stdin
    if stream.isatty():
        raise NoStdinError("No stdin detected. Pipe a value when using --value-stdin.")
    return _strip_trailing_newline(stream.read())


def read_secret_source(source: Optional[SecretSource], stdin: Optional[TextIO] = None) -> Optional[str]:
    if source is None:
        return None
    if isinstance(source, InlineSource):
        return source.value
    if isinstance(source, StdinSource):
        return read_stdin(stdin)
    if isinstance(source, FileSource):
        try:
            content = Path(source.path).read_text(encoding="utf-8")
        except OSError as e:
            raise ValidationError(f"Unable to read secret value file {source.path}: {e}")
        return _strip_trailing_newline(content)
    raise TypeError(f"Unknown secret source: {source!r}")


def resolve_secret_value(
    value: Optional[str] = None,
    use_stdin: bool = False,
    file_path: Optional[str] = None,
    stdin: Optional[TextIO] = None,
) -> Optional[str]:
    """
    Resolve a secret value from --value, --value-stdin or --file.

    At most one source may be given. With none, ``value`` is returned as is.
    """
    source = select_secret_source(value, use_stdin, file_path)
    if source is None:
        return value
    return read_secret_source(source, stdin)
