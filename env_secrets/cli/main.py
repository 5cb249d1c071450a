"""CLI entrypoint for env-secrets."""
import os
import sys
import argparse
import fnmatch
import logging
import re
from pathlib import Path

from ..secrets.domains.errors import EnvSecretsError, FileConflictError, MissingSourceError, ValidationError
from ..secrets.domains.validators import validate_delete_options
from .helpers import resolve_aws_scope, resolve_output_format, resolve_secret_value
from .output import Column, print_data

VERSION = "0.1.0"
DEBUG_NAMESPACE = "env-secrets"

logger = logging.getLogger(__name__)

WRITE_COLUMNS = [Column("name", "Name"), Column("arn", "ARN"), Column("versionId", "VersionId")]
UPSERT_COLUMNS = [Column("name", "Name"), Column("action", "Action"), Column("versionId", "VersionId")]
LIST_COLUMNS = [
    Column("name", "Name"),
    Column("description", "Description"),
    Column("lastChangedDate", "LastChanged"),
]
GET_COLUMNS = [
    Column("name", "Name"),
    Column("arn", "ARN"),
    Column("description", "Description"),
    Column("kmsKeyId", "KmsKeyId"),
    Column("createdDate", "Created"),
    Column("lastChangedDate", "LastChanged"),
    Column("deletedDate", "Deleted"),
]
DELETE_COLUMNS = [Column("name", "Name"), Column("arn", "ARN"), Column("deletedDate", "DeletedDate")]


class CLIParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit code 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"Error: {message}", file=sys.stderr)
        sys.exit(1)


def debug_enabled(value: str) -> bool:
    """Check a DEBUG-style pattern list (e.g. "env-secrets:*,other") for our namespace."""
    names = (DEBUG_NAMESPACE, f"{DEBUG_NAMESPACE}:")
    enabled = False
    for pattern in re.split(r"[\s,]+", value or ""):
        if not pattern:
            continue
        skip = pattern.startswith("-")
        if not any(fnmatch.fnmatch(name, pattern.lstrip("-")) for name in names):
            continue
        if skip:
            return False
        enabled = True
    return enabled


def configure_logging() -> None:
    """Log to stderr; DEBUG=env-secrets turns on diagnostic output."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        stream=sys.stderr
    )
    if debug_enabled(os.getenv("DEBUG", "")):
        logging.getLogger("env_secrets").setLevel(logging.DEBUG)


def split_program_args(argv):
    """Split argv at the first '--' into (tool arguments, program to run)."""
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1:]
    return argv, []


def _scope(args):
    """Subcommand -p/-r win over the ones given to 'aws'."""
    return resolve_aws_scope(
        {"profile": getattr(args, "profile", None), "region": getattr(args, "region", None)},
        lambda: {"profile": args.aws_profile, "region": args.aws_region},
    )


def _output_format(args):
    return resolve_output_format(getattr(args, "output", None), getattr(args, "secret_output", None))


def cmd_version(args):
    """Show version information."""
    print(f"env-secrets {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from env_secrets.secrets.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    from env_secrets.secrets.domains.config_loader import default_config_path
    from env_secrets.secrets.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
    else:
        default_config = default_config_path()
        print(f"Config path: {default_config}")
        if default_config.exists():
            print("Source: default")
        else:
            print("Source: default (file not found, built-in defaults apply)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from env_secrets.secrets.domains.config_loader import default_config_path
    from env_secrets.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_aws(args):
    """Fetch a secret and run a program with it, or write it to a file."""
    from env_secrets.secrets.workflows.launcher import mask_value, merge_environment, run_program, write_env_file
    from env_secrets.secrets.workflows.secret_operations import fetch_secrets

    if not args.secret:
        raise ValidationError("Missing required option --secret for this command.")

    if args.output_file and os.path.exists(args.output_file):
        raise FileConflictError(f"File {args.output_file} already exists and will not be overwritten")

    scope = resolve_aws_scope({"profile": args.aws_profile, "region": args.aws_region})
    secrets = fetch_secrets(args.secret, scope)
    masked = {key: mask_value(value) for key, value in secrets.items()}
    logger.debug(f"Fetched {args.secret}: {masked}")

    if args.output_file:
        write_env_file(args.output_file, secrets)
        print(f"Secrets written to {args.output_file}")
        return

    if not args.program:
        logger.debug("No program given, nothing to run")
        return

    env = merge_environment(os.environ, secrets)
    returncode = run_program(args.program, env)
    if returncode != 0:
        # Killed by a signal: report it the way a shell does
        sys.exit(128 - returncode if returncode < 0 else returncode)


def cmd_secret_create(args):
    """Create a secret in AWS Secrets Manager."""
    from env_secrets.secrets.workflows.secret_operations import create_secret

    output_format = _output_format(args)
    value = resolve_secret_value(args.value, args.value_stdin, args.file)
    if not value:
        raise MissingSourceError("Secret value is required. Provide --value, --value-stdin, or --file.")

    result = create_secret(
        args.name,
        value,
        description=args.description,
        kms_key_id=args.kms_key_id,
        tags=args.tag,
        scope=_scope(args),
    )
    print_data(output_format, WRITE_COLUMNS, [result.to_dict()])


def cmd_secret_update(args):
    """Update a secret's value or metadata."""
    from env_secrets.secrets.workflows.secret_operations import update_secret

    output_format = _output_format(args)
    value = resolve_secret_value(args.value, args.value_stdin, args.file)
    if not value and not args.description and not args.kms_key_id:
        raise ValidationError(
            "Nothing to update. Provide --value/--value-stdin/--file, --description, or --kms-key-id."
        )

    result = update_secret(
        args.name,
        value=value,
        description=args.description,
        kms_key_id=args.kms_key_id,
        scope=_scope(args),
    )
    print_data(output_format, WRITE_COLUMNS, [result.to_dict()])


def cmd_secret_upsert(args):
    """Create or update one secret per line of an env file."""
    from env_secrets.secrets.workflows.secret_operations import upsert_secrets

    output_format = _output_format(args)
    report = upsert_secrets(args.file, args.prefix, scope=_scope(args))
    print_data(output_format, UPSERT_COLUMNS, [outcome.to_dict() for outcome in report.outcomes])


def cmd_secret_list(args):
    """List secrets, optionally filtered by prefix and tags."""
    from env_secrets.secrets.workflows.secret_operations import list_secrets

    output_format = _output_format(args)
    secrets = list_secrets(prefix=args.prefix, tags=args.tag, scope=_scope(args))
    rows = [
        {"name": s.name, "description": s.description, "lastChangedDate": s.last_changed_date}
        for s in secrets
    ]
    print_data(output_format, LIST_COLUMNS, rows)


def cmd_secret_get(args):
    """Show secret metadata (never the value)."""
    from env_secrets.secrets.workflows.secret_operations import get_secret_metadata

    output_format = _output_format(args)
    metadata = get_secret_metadata(args.name, scope=_scope(args))
    row = metadata.to_dict()
    print_data(output_format, GET_COLUMNS, [{c.key: row[c.key] for c in GET_COLUMNS}])


def cmd_secret_delete(args):
    """Delete a secret after explicit confirmation."""
    from env_secrets.secrets.workflows.secret_operations import delete_secret

    recovery_days = validate_delete_options(
        args.yes, args.recovery_days, args.force_delete_without_recovery
    )
    output_format = _output_format(args)
    result = delete_secret(
        args.name,
        recovery_days=recovery_days,
        force_delete_without_recovery=args.force_delete_without_recovery,
        confirmed=args.yes,
        scope=_scope(args),
    )
    print_data(output_format, DELETE_COLUMNS, [result.to_dict()])


def _add_scope_arguments(parser):
    parser.add_argument("-p", "--profile", help="AWS profile to use")
    parser.add_argument("-r", "--region", help="AWS region to use")
    parser.add_argument("--output", help="Output format: json|table (default: table)")


def _add_value_arguments(parser, file_help):
    parser.add_argument("-v", "--value", help="Secret value")
    parser.add_argument("--value-stdin", action="store_true", help="Read secret value from stdin")
    parser.add_argument("--file", help=file_help)
    parser.add_argument("-d", "--description", help="Secret description")
    parser.add_argument("-k", "--kms-key-id", help="KMS key id")


def build_parser():
    """Build the argument parser; returns (parser, group parsers by name)."""
    parser = CLIParser(
        prog="env-secrets",
        description="Pull secrets from AWS Secrets Manager and inject them into the running environment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Validation, vault or usage error (or the program's own exit code)

Environment variables:
  AWS_PROFILE, AWS_REGION, AWS_ACCESS_KEY_ID, ... - standard AWS settings
  AWS_ENDPOINT_URL / AWS_SECRETS_MANAGER_ENDPOINT - endpoint override (e.g. LocalStack)
  DEBUG=env-secrets - diagnostic logging to stderr

Configuration:
  Default location: ~/.config/env-secrets/config.yml (optional)
  Custom path: Set with 'env-secrets config set-path <path>'
        """
    )
    parser.add_argument("--version", action="version", version=f"env-secrets {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of env-secrets"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage env-secrets configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/env-secrets/preferences.json
        """
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    _config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the current configuration file path and its source"
    )
    _config_clear_parser = config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference; the default location is used afterwards"
    )

    # aws command
    aws_parser = subparsers.add_parser(
        "aws",
        help="Get secrets from AWS Secrets Manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Fetch a JSON secret and run a program with its keys as environment variables:

  env-secrets aws -s app/dev -r us-east-1 -- node index.js

With -o the variables are written to a new, owner-read-only file instead.
        """
    )
    aws_parser.add_argument("-s", "--secret", help="Secret to get")
    aws_parser.add_argument("-p", "--profile", dest="aws_profile", help="AWS profile to use")
    aws_parser.add_argument("-r", "--region", dest="aws_region", help="AWS region to use")
    aws_parser.add_argument(
        "-o", "--output", dest="output_file",
        help="Write secrets to this file instead of running a program"
    )
    aws_subparsers = aws_parser.add_subparsers(dest="aws_command")

    secret_parser = aws_subparsers.add_parser(
        "secret",
        help="Manage AWS secrets",
        description="Create, update, import, list, inspect and delete secrets"
    )
    secret_parser.add_argument(
        "--output", dest="secret_output", help="Default output format for subcommands: json|table"
    )
    secret_subparsers = secret_parser.add_subparsers(dest="secret_command")

    create_parser = secret_subparsers.add_parser("create", help="Create a secret")
    create_parser.add_argument("-n", "--name", required=True, help="Secret name")
    _add_value_arguments(create_parser, "Read secret value from file")
    create_parser.add_argument(
        "-t", "--tag", nargs="+", action="extend", help="Tag in key=value format (repeatable)"
    )
    _add_scope_arguments(create_parser)

    update_parser = secret_subparsers.add_parser("update", help="Update secret value or metadata")
    update_parser.add_argument("-n", "--name", required=True, help="Secret name")
    _add_value_arguments(update_parser, "Read new secret value from file")
    _add_scope_arguments(update_parser)

    upsert_parser = secret_subparsers.add_parser(
        "upsert",
        aliases=["import"],
        help="Create or update one secret per KEY=value line of an env file",
        description="Each line becomes the secret <prefix><KEY>; existing secrets get a new version"
    )
    upsert_parser.add_argument("--file", required=True, help="Env file to import")
    upsert_parser.add_argument("--prefix", required=True, help="Prefix for secret names")
    _add_scope_arguments(upsert_parser)

    list_parser = secret_subparsers.add_parser("list", help="List secrets")
    list_parser.add_argument("--prefix", help="Filter secrets by name prefix")
    list_parser.add_argument(
        "-t", "--tag", nargs="+", action="extend", help="Filter by tag in key=value format"
    )
    _add_scope_arguments(list_parser)

    get_parser = secret_subparsers.add_parser("get", help="Get secret metadata and version information")
    get_parser.add_argument("-n", "--name", required=True, help="Secret name")
    _add_scope_arguments(get_parser)

    delete_parser = secret_subparsers.add_parser("delete", help="Delete a secret")
    delete_parser.add_argument("-n", "--name", required=True, help="Secret name")
    delete_parser.add_argument("--recovery-days", help="Recovery window in days (7-30)")
    delete_parser.add_argument(
        "--force-delete-without-recovery",
        action="store_true",
        help="Permanently delete secret without recovery window"
    )
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Confirm delete action")
    _add_scope_arguments(delete_parser)

    groups = {"config": config_parser, "aws": aws_parser, "secret": secret_parser}
    return parser, groups


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Any error; in program mode, the program's own exit code
    """
    configure_logging()

    argv = list(sys.argv[1:] if argv is None else argv)
    argv, program = split_program_args(argv)

    parser, groups = build_parser()
    args = parser.parse_args(argv)
    args.program = program

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if program and (args.command != "aws" or args.aws_command == "secret"):
        parser.error("a program after '--' is only accepted by 'aws -s'")

    # Route to command handlers
    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            else:
                groups["config"].print_help()
                sys.exit(1)
        elif args.command == "aws":
            if args.aws_command == "secret":
                if args.secret_command == "create":
                    cmd_secret_create(args)
                elif args.secret_command == "update":
                    cmd_secret_update(args)
                elif args.secret_command in ("upsert", "import"):
                    cmd_secret_upsert(args)
                elif args.secret_command == "list":
                    cmd_secret_list(args)
                elif args.secret_command == "get":
                    cmd_secret_get(args)
                elif args.secret_command == "delete":
                    cmd_secret_delete(args)
                else:
                    groups["secret"].print_help()
                    sys.exit(1)
            else:
                cmd_aws(args)
        else:
            parser.print_help()
            sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except EnvSecretsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
