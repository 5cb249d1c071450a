"""End-to-end tests for the env-secrets CLI with boto3 mocked out."""
import io
import json
import os
from unittest import mock

import pytest

from env_secrets.cli.main import VERSION, debug_enabled, main, split_program_args

ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:app"


def run_cli(argv):
    """Run main() and return its exit code (0 when it returns normally)."""
    try:
        main(argv)
    except SystemExit as e:
        return e.code
    return 0


class TestHelpersOfMain:
    """Test suite for argv splitting and the DEBUG namespace check."""

    def test_split_program_args(self):
        """Test that everything after the first '--' is the program."""
        assert split_program_args(["aws", "-s", "x", "--", "node", "--", "a"]) == (
            ["aws", "-s", "x"], ["node", "--", "a"]
        )
        assert split_program_args(["version"]) == (["version"], [])

    @pytest.mark.parametrize("value,expected", [
        ("env-secrets", True),
        ("env-secrets:*", True),
        ("*", True),
        ("express,env-secrets", True),
        ("env-*", True),
        ("express", False),
        ("", False),
        ("-env-secrets", False),
        ("env-secretsfoo", False),
        ("env-secrets-other", False),
        ("*,-env-secrets", False),
        ("-env-secrets,env-secrets:*", False),
    ])
    def test_debug_enabled(self, value, expected):
        """Test DEBUG pattern matching for the env-secrets namespace."""
        assert debug_enabled(value) is expected


class TestBasicCommands:
    """Test suite for commands that need no AWS access."""

    def test_version(self, capsys):
        """Test the version command."""
        assert run_cli(["version"]) == 0
        assert capsys.readouterr().out.strip() == f"env-secrets {VERSION}"

    def test_version_flag(self, capsys):
        """Test --version."""
        assert run_cli(["--version"]) == 0
        assert VERSION in capsys.readouterr().out

    def test_no_command(self, capsys):
        """Test that running without a command prints help and fails."""
        assert run_cli([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_usage_error_exits_one(self, capsys):
        """Test that argparse usage errors exit with 1."""
        assert run_cli(["aws", "secret", "get"]) == 1
        assert "--name" in capsys.readouterr().err

    def test_program_only_for_aws(self, capsys):
        """Test that '--' is rejected for other commands."""
        assert run_cli(["version", "--", "ls"]) == 1

    def test_program_rejected_for_secret_commands(self, aws, capsys):
        """Test that 'aws secret' subcommands refuse a trailing program."""
        assert run_cli(["aws", "secret", "list", "--", "rm", "-rf", "/"]) == 1

        captured = capsys.readouterr()
        assert "only accepted by 'aws -s'" in captured.err
        assert captured.out == ""
        aws.session_cls.assert_not_called()


class TestInjection:
    """Test suite for 'env-secrets aws -s'."""

    def test_missing_secret_option(self, aws, capsys):
        """Test that -s is required."""
        assert run_cli(["aws"]) == 1
        assert "Missing required option --secret" in capsys.readouterr().err
        aws.session_cls.assert_not_called()

    def test_runs_program_with_secrets(self, aws, monkeypatch):
        """Test that the program gets the secrets on top of the current env."""
        monkeypatch.setenv("EXISTING", "kept")
        monkeypatch.setenv("API_KEY", "overridden")
        aws.sm.get_secret_value.return_value = {"SecretString": json.dumps({"API_KEY": "abc"})}

        with mock.patch("env_secrets.secrets.workflows.launcher.run_program", return_value=0) as run:
            code = run_cli(["aws", "-s", "app/dev", "-r", "us-east-1", "-p", "dev", "--", "node", "index.js"])

        assert code == 0
        program, env = run.call_args.args
        assert program == ["node", "index.js"]
        assert env["API_KEY"] == "abc"
        assert env["EXISTING"] == "kept"
        assert os.environ["API_KEY"] == "overridden"
        aws.session_cls.assert_called_once_with(profile_name="dev", region_name="us-east-1")

    def test_program_exit_code_propagated(self, aws):
        """Test that the child's exit status becomes ours."""
        aws.sm.get_secret_value.return_value = {"SecretString": "{}"}

        with mock.patch("env_secrets.secrets.workflows.launcher.run_program", return_value=7):
            assert run_cli(["aws", "-s", "app/dev", "--", "false"]) == 7

    def test_vault_failure_still_runs_program(self, aws, aws_error):
        """Test that injection degrades to no secrets when AWS fails."""
        aws.sts.get_caller_identity.side_effect = aws_error("ExpiredTokenException", "expired")

        with mock.patch("env_secrets.secrets.workflows.launcher.run_program", return_value=0) as run:
            assert run_cli(["aws", "-s", "app/dev", "--", "env"]) == 0

        _, env = run.call_args.args
        assert env == dict(os.environ)

    def test_writes_output_file(self, aws, tmp_path, capsys):
        """Test that -o writes KEY=value lines instead of running a program."""
        aws.sm.get_secret_value.return_value = {"SecretString": json.dumps({"A": "1", "B": "2"})}
        target = tmp_path / "out.env"

        assert run_cli(["aws", "-s", "app/dev", "-o", str(target)]) == 0

        assert target.read_text() == f"A=1{os.linesep}B=2{os.linesep}"
        assert f"Secrets written to {target}" in capsys.readouterr().out

    def test_existing_output_file(self, aws, tmp_path, capsys):
        """Test that an existing output file fails without contacting AWS."""
        target = tmp_path / "out.env"
        target.write_text("KEEP=1\n")

        assert run_cli(["aws", "-s", "app/dev", "-o", str(target)]) == 1

        assert "already exists and will not be overwritten" in capsys.readouterr().err
        assert target.read_text() == "KEEP=1\n"
        aws.session_cls.assert_not_called()


class TestSecretCommands:
    """Test suite for 'env-secrets aws secret ...'."""

    def test_create_table(self, aws, capsys):
        """Test create with an inline value and table output."""
        aws.sm.create_secret.return_value = {"Name": "app/dev", "ARN": ARN, "VersionId": "v1"}

        assert run_cli(["aws", "secret", "create", "-n", "app/dev", "-v", "x", "-t", "team=a", "env=b"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["Name", "ARN", "VersionId"]
        assert lines[2].split() == ["app/dev", ARN, "v1"]
        assert aws.sm.create_secret.call_args.kwargs["Tags"] == [
            {"Key": "team", "Value": "a"}, {"Key": "env", "Value": "b"}
        ]

    def test_create_json_from_stdin(self, aws, capsys, monkeypatch):
        """Test create reading the value from piped stdin with JSON output."""
        monkeypatch.setattr("sys.stdin", io.StringIO('{"K":"V"}\n'))
        aws.sm.create_secret.return_value = {"Name": "app/dev", "ARN": ARN, "VersionId": "v1"}

        assert run_cli(["aws", "secret", "create", "-n", "app/dev", "--value-stdin", "--output", "json"]) == 0

        assert json.loads(capsys.readouterr().out) == [{"name": "app/dev", "arn": ARN, "versionId": "v1"}]
        assert aws.sm.create_secret.call_args.kwargs["SecretString"] == '{"K":"V"}'

    def test_create_from_file(self, aws, tmp_path):
        """Test create reading the value from --file."""
        value_file = tmp_path / "value.json"
        value_file.write_text('{"K":"V"}\n')
        aws.sm.create_secret.return_value = {"Name": "app/dev", "ARN": ARN, "VersionId": "v1"}

        assert run_cli(["aws", "secret", "create", "-n", "app/dev", "--file", str(value_file)]) == 0
        assert aws.sm.create_secret.call_args.kwargs["SecretString"] == '{"K":"V"}'

    def test_create_requires_value(self, aws, capsys):
        """Test that create without a value source fails."""
        assert run_cli(["aws", "secret", "create", "-n", "app/dev"]) == 1
        assert "Secret value is required" in capsys.readouterr().err
        aws.session_cls.assert_not_called()

    def test_create_two_sources(self, aws, capsys, tmp_path):
        """Test that two value sources are rejected."""
        assert run_cli(["aws", "secret", "create", "-n", "app/dev", "-v", "x", "--file", str(tmp_path / "f")]) == 1
        assert "Use only one secret value source" in capsys.readouterr().err

    def test_create_conflict(self, aws, aws_error, capsys):
        """Test that vault errors are printed and exit 1 with no stdout."""
        aws.sm.create_secret.side_effect = aws_error("AlreadyExistsException")

        assert run_cli(["aws", "secret", "create", "-n", "app/dev", "-v", "x"]) == 1

        captured = capsys.readouterr()
        assert captured.out == ""
        assert 'Error: Secret for "app/dev" already exists.' in captured.err

    def test_invalid_output_before_network(self, aws, capsys):
        """Test that a bad --output value fails before contacting AWS."""
        assert run_cli(["aws", "secret", "list", "--output", "yaml"]) == 1
        assert 'Invalid output format "yaml"' in capsys.readouterr().err
        aws.session_cls.assert_not_called()

    def test_scope_precedence(self, aws):
        """Test that subcommand -p/-r win over the aws-level ones per field."""
        aws.sm.list_secrets.return_value = {"SecretList": []}

        assert run_cli(["aws", "-p", "global", "-r", "us-east-1", "secret", "list", "-p", "local"]) == 0

        aws.session_cls.assert_called_once_with(profile_name="local", region_name="us-east-1")

    def test_group_output_format(self, aws, capsys):
        """Test that --output on the secret group applies to subcommands."""
        aws.sm.list_secrets.return_value = {"SecretList": [{"Name": "a", "Description": "d"}]}

        assert run_cli(["aws", "secret", "--output", "json", "list"]) == 0

        assert json.loads(capsys.readouterr().out) == [
            {"name": "a", "description": "d", "lastChangedDate": None}
        ]

    def test_list_empty(self, aws, capsys):
        """Test that an empty list prints the no-results message."""
        aws.sm.list_secrets.return_value = {"SecretList": []}

        assert run_cli(["aws", "secret", "list", "--prefix", "app/"]) == 0
        assert capsys.readouterr().out == "No results.\n"

    def test_update_nothing_to_do(self, aws, capsys):
        """Test that update without changes fails."""
        assert run_cli(["aws", "secret", "update", "-n", "app/dev"]) == 1
        assert "Nothing to update" in capsys.readouterr().err

    def test_update_description(self, aws):
        """Test update of the description only."""
        aws.sm.update_secret.return_value = {"Name": "app/dev", "ARN": ARN, "VersionId": None}

        assert run_cli(["aws", "secret", "update", "-n", "app/dev", "-d", "new"]) == 0
        aws.sm.update_secret.assert_called_once_with(SecretId="app/dev", Description="new")

    @pytest.mark.parametrize("command", ["upsert", "import"])
    def test_upsert_and_import(self, aws, tmp_path, capsys, command):
        """Test that upsert and its import alias load an env file."""
        env_file = tmp_path / ".env"
        env_file.write_text("API_KEY=abc\n")
        aws.sm.create_secret.return_value = {"Name": "app/API_KEY", "ARN": ARN, "VersionId": "v1"}

        assert run_cli(["aws", "secret", command, "--file", str(env_file), "--prefix", "app/"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].split() == ["Name", "Action", "VersionId"]
        assert lines[2].split() == ["app/API_KEY", "created", "v1"]

    def test_get(self, aws, capsys):
        """Test get prints metadata columns."""
        aws.sm.describe_secret.return_value = {"Name": "app/dev", "ARN": ARN, "Description": "d"}

        assert run_cli(["aws", "secret", "get", "-n", "app/dev"]) == 0

        header = capsys.readouterr().out.splitlines()[0].split()
        assert header == ["Name", "ARN", "Description", "KmsKeyId", "Created", "LastChanged", "Deleted"]

    def test_get_json_has_table_keys(self, aws, capsys):
        """Test that get --output json prints the same fields as the table."""
        aws.sm.describe_secret.return_value = {
            "Name": "app/dev", "ARN": ARN, "Tags": [{"Key": "team", "Value": "a"}],
            "VersionIdsToStages": {"v1": ["AWSCURRENT"]},
        }

        assert run_cli(["aws", "secret", "get", "-n", "app/dev", "--output", "json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert list(data[0]) == [
            "name", "arn", "description", "kmsKeyId", "createdDate", "lastChangedDate", "deletedDate"
        ]
        assert data[0]["name"] == "app/dev"

    def test_get_invalid_name(self, aws, capsys):
        """Test that an invalid name fails before contacting AWS."""
        assert run_cli(["aws", "secret", "get", "-n", "bad name with spaces"]) == 1
        assert "Invalid secret name" in capsys.readouterr().err
        aws.session_cls.assert_not_called()

    @pytest.mark.parametrize("extra", [
        [],
        ["--recovery-days", "10"],
        ["--force-delete-without-recovery"],
        ["--recovery-days", "99", "--force-delete-without-recovery", "--output", "bogus"],
    ])
    def test_delete_requires_yes(self, aws, capsys, extra):
        """Test that delete without --yes fails whatever else is given."""
        assert run_cli(["aws", "secret", "delete", "-n", "app/dev"] + extra) == 1
        assert "Delete requires --yes confirmation." in capsys.readouterr().err
        aws.session_cls.assert_not_called()

    def test_delete(self, aws, capsys):
        """Test delete with a recovery window."""
        aws.sm.delete_secret.return_value = {"Name": "app/dev", "ARN": ARN}

        assert run_cli(["aws", "secret", "delete", "-n", "app/dev", "--recovery-days", "7", "--yes"]) == 0

        aws.sm.delete_secret.assert_called_once_with(SecretId="app/dev", RecoveryWindowInDays=7)
        assert capsys.readouterr().out.splitlines()[0].split() == ["Name", "ARN", "DeletedDate"]

    def test_delete_bad_window(self, aws, capsys):
        """Test that a window outside [7, 30] fails."""
        assert run_cli(["aws", "secret", "delete", "-n", "app/dev", "--recovery-days", "3", "-y"]) == 1
        assert "between 7 and 30" in capsys.readouterr().err

    def test_secret_group_without_subcommand(self, aws, capsys):
        """Test that 'aws secret' alone prints its help and fails."""
        assert run_cli(["aws", "secret"]) == 1
        assert "create" in capsys.readouterr().out
