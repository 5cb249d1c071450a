"""Shared fixtures: isolated home directory and a fake boto3 session."""
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import pytest
from botocore.exceptions import ClientError

from env_secrets.secrets.domains import preferences


def client_error(code, message="boom", operation="Operation"):
    """Build a real botocore ClientError with the given error code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)

    fake_config_dir = fake_home / ".config" / "env-secrets"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home


@pytest.fixture
def temp_config_dir(temp_home):
    """Fixture to create temporary config directory."""
    config_dir = temp_home / ".config" / "env-secrets"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


@pytest.fixture
def aws(temp_home, monkeypatch):
    """Patch boto3 so every client is a MagicMock; STS identity succeeds by default."""
    for var in (
        "AWS_ENDPOINT_URL", "AWS_SECRETS_MANAGER_ENDPOINT", "AWS_PROFILE",
        "AWS_ACCESS_KEY_ID", "AWS_REGION", "AWS_DEFAULT_REGION",
    ):
        monkeypatch.delenv(var, raising=False)

    secretsmanager = mock.MagicMock(name="secretsmanager")
    sts = mock.MagicMock(name="sts")
    sts.get_caller_identity.return_value = {
        "Account": "123456789012",
        "Arn": "arn:aws:iam::123456789012:user/test",
    }
    clients = {"secretsmanager": secretsmanager, "sts": sts}

    session = mock.MagicMock(name="session")
    session.client.side_effect = lambda service, **kwargs: clients[service]

    with mock.patch("boto3.session.Session", return_value=session) as session_cls:
        yield SimpleNamespace(sm=secretsmanager, sts=sts, session=session, session_cls=session_cls)


@pytest.fixture
def aws_error():
    """Factory fixture for botocore ClientErrors."""
    return client_error
