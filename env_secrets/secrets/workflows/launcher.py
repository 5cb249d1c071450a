"""Hand fetched secrets to a child process or to a file."""
import logging
import os
import subprocess
from typing import Dict, List, Mapping, Optional

from ..domains.errors import FileConflictError, ProcessLaunchError

logger = logging.getLogger(__name__)

# Owner read-only
ENV_FILE_MODE = 0o400


def mask_value(value: Optional[str]) -> Optional[str]:
    """Mask all but the first character and the last four."""
    if not value:
        return None
    return "".join(
        "*" if 0 < i < len(value) - 4 else char for i, char in enumerate(value)
    )


def merge_environment(base: Mapping[str, str], overrides: Mapping[str, str]) -> Dict[str, str]:
    """Return a new environment: ``base`` with ``overrides`` applied on top."""
    merged = dict(base)
    merged.update(overrides)
    return merged


def format_env_lines(secrets: Mapping[str, str]) -> str:
    """Render secrets as KEY=value lines terminated by the platform line ending."""
    return "".join(f"{key}={value}{os.linesep}" for key, value in secrets.items())


def write_env_file(path: str, secrets: Mapping[str, str]) -> None:
    """
    Write secrets to a new owner-read-only file.

    Raises:
        FileConflictError: If the file already exists; it is never overwritten
    """
    if os.path.exists(path):
        raise FileConflictError(f"File {path} already exists and will not be overwritten")

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, ENV_FILE_MODE)
    except FileExistsError:
        raise FileConflictError(f"File {path} already exists and will not be overwritten")

    # newline="" keeps os.linesep as written
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
        f.write(format_env_lines(secrets))
    logger.debug(f"Wrote {len(secrets)} secrets to {path}")


def run_program(program: List[str], env: Mapping[str, str]) -> int:
    """
    Run ``program`` with ``env``, inheriting stdin/stdout/stderr.

    Returns:
        The child's exit status

    Raises:
        ProcessLaunchError: If the executable cannot be started
    """
    logger.debug(f"Running: {' '.join(program)}")
    try:
        result = subprocess.run(program, env=dict(env), check=False)
    except OSError as e:
        raise ProcessLaunchError(f"Unable to run {program[0]}: {e}")
    return result.returncode
