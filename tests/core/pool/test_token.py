"""Unit tests for TokenProvider and identity-error classification."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoCredentialsError, NoRegionError

from student_api.core.errors import PERMISSION_DENIED_MESSAGE, AuthError, PermissionDeniedError
from student_api.core.pool import TokenProvider, classify_token_error


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "nope"}}, "GenerateDBAuthToken")


def test_get_token_passes_scope_to_boto() -> None:
    rds = MagicMock()
    rds.generate_db_auth_token.return_value = "signed-token"
    provider = TokenProvider(region="eu-west-1", client=rds)

    token = provider.get_token("db.example.internal", 3306, "iam_app")

    assert token == "signed-token"
    rds.generate_db_auth_token.assert_called_once_with(
        DBHostname="db.example.internal",
        Port=3306,
        DBUsername="iam_app",
        Region="eu-west-1",
    )


def test_get_token_explicit_region_wins() -> None:
    rds = MagicMock()
    provider = TokenProvider(region="eu-west-1", client=rds)
    provider.get_token("h", 3306, "u", "ap-south-1")
    assert rds.generate_db_auth_token.call_args.kwargs["Region"] == "ap-south-1"


def test_client_is_built_lazily_from_session() -> None:
    with patch("student_api.core.pool.token.boto3.Session") as session_cls:
        provider = TokenProvider(region="us-east-1")
        session_cls.assert_not_called()
        provider.get_token("h", 3306, "u")
    session_cls.assert_called_once_with(region_name="us-east-1")
    session_cls.return_value.client.assert_called_once_with("rds")


def test_missing_credentials_is_permission_denied() -> None:
    rds = MagicMock()
    rds.generate_db_auth_token.side_effect = NoCredentialsError()
    provider = TokenProvider(client=rds)

    with pytest.raises(PermissionDeniedError) as exc_info:
        provider.get_token("h", 3306, "u")
    assert str(exc_info.value) == PERMISSION_DENIED_MESSAGE
    assert isinstance(exc_info.value.cause, NoCredentialsError)


def test_message_with_access_denied_is_permission_denied() -> None:
    rds = MagicMock()
    rds.generate_db_auth_token.side_effect = RuntimeError("sts: access denied for role")
    provider = TokenProvider(client=rds)

    with pytest.raises(PermissionDeniedError):
        provider.get_token("h", 3306, "u")


def test_other_errors_are_plain_auth_errors() -> None:
    rds = MagicMock()
    rds.generate_db_auth_token.side_effect = NoRegionError()
    provider = TokenProvider(client=rds)

    with pytest.raises(AuthError) as exc_info:
        provider.get_token("h", 3306, "u")
    assert not isinstance(exc_info.value, PermissionDeniedError)
    assert "region" in str(exc_info.value).lower()


@pytest.mark.parametrize("code", ["AccessDenied", "ExpiredToken"])
def test_client_error_access_codes(code: str) -> None:
    assert isinstance(classify_token_error(_client_error(code)), PermissionDeniedError)


def test_client_error_other_code_is_auth_error() -> None:
    err = classify_token_error(_client_error("Throttling"))
    assert type(err) is AuthError


def test_classify_passes_auth_errors_through() -> None:
    original = AuthError("already classified")
    assert classify_token_error(original) is original


def test_token_value_is_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    rds = MagicMock()
    rds.generate_db_auth_token.return_value = "super-secret-token"
    provider = TokenProvider(client=rds)
    with caplog.at_level("DEBUG"):
        provider.get_token("h", 3306, "u")
    assert "super-secret-token" not in caplog.text
