"""
IAM database auth tokens for RDS (MySQL flavour).

The token is a presigned URL computed locally by botocore from whatever
credentials the instance role provides; it is valid for ~15 minutes and is
only ever used as the password of one connection attempt. Never log it.
"""

import logging
from typing import Any

import boto3
from botocore.exceptions import (
    ClientError,
    CredentialRetrievalError,
    NoCredentialsError,
    PartialCredentialsError,
)

from student_api.core.errors import (
    AuthError,
    PermissionDeniedError,
    describe,
    has_permission_hint,
)

_log = logging.getLogger(__name__)

_CREDENTIAL_ERRORS = (NoCredentialsError, PartialCredentialsError, CredentialRetrievalError)
_ACCESS_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "InvalidClientTokenId",
    "ExpiredToken",
}


def classify_token_error(exc: BaseException) -> AuthError:
    """Map an identity-service failure onto PermissionDeniedError or AuthError."""
    if isinstance(exc, AuthError):
        return exc
    if isinstance(exc, _CREDENTIAL_ERRORS):
        return PermissionDeniedError(cause=exc)
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code in _ACCESS_DENIED_CODES:
            return PermissionDeniedError(cause=exc)
        return AuthError(describe(exc), cause=exc)
    if has_permission_hint(exc):
        return PermissionDeniedError(cause=exc)
    return AuthError(describe(exc), cause=exc)


class TokenProvider:
    """Generates RDS IAM auth tokens; holds no state beyond the boto3 client."""

    def __init__(self, region: str | None = None, *, client: Any = None) -> None:
        self._region = region
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            session = boto3.Session(region_name=self._region)
            self._client = session.client("rds")
        return self._client

    def get_token(
        self, host: str, port: int, user: str, region: str | None = None
    ) -> str:
        """
        Return a fresh token scoped to (host, port, user).

        Raises PermissionDeniedError when the instance identity cannot sign,
        AuthError for anything else. No retries.
        """
        try:
            return self._get_client().generate_db_auth_token(
                DBHostname=host,
                Port=port,
                DBUsername=user,
                Region=region or self._region,
            )
        except Exception as exc:
            err = classify_token_error(exc)
            if isinstance(err, PermissionDeniedError):
                _log.warning("IAM token generation denied for %s@%s: %s", user, host, exc)
            else:
                _log.error("IAM token generation failed for %s@%s: %s", user, host, exc)
            raise err from exc
