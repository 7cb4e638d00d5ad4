from __future__ import annotations

import hmac
import logging
from typing import Any, MutableMapping

import jwt
from jwt import PyJWTError

from storegate.common.config import Settings

logger = logging.getLogger("auth")


class AuthenticationError(Exception):
    """Raised when a bearer credential is missing or invalid."""


class Authorizer:
    """Decides whether a request may mutate objects or read private ones.

    A request is authorized when its ``Authorization: Bearer <token>`` header
    carries either the static ``AUTH_TOKEN`` or a JWT signed with
    ``AUTH_TOKEN_SECRET`` that names a subject. With neither configured every
    request is denied.
    """

    def __init__(self, settings: Settings):
        self._settings = settings

    def is_authorized(self, authorization_header: str | None) -> bool:
        try:
            self.authenticate(authorization_header)
        except AuthenticationError as exc:
            logger.debug("authorization_denied reason=%s", exc)
            return False
        return True

    def authenticate(self, authorization_header: str | None) -> str:
        """Validate the header and return the caller's subject."""
        if not self._settings.auth_configured:
            raise AuthenticationError("Authorization is not configured")

        if not authorization_header or authorization_header.strip().lower() == "bearer":
            raise AuthenticationError("Missing bearer token")

        scheme, _, credentials = authorization_header.partition(" ")
        if scheme.lower() != "bearer" or not credentials.strip():
            raise AuthenticationError("Invalid authorization header")

        token = credentials.strip()
        static_token = self._settings.AUTH_TOKEN
        if static_token and hmac.compare_digest(
            token.encode("utf-8"), static_token.encode("utf-8")
        ):
            return "token"

        if not self._settings.AUTH_TOKEN_SECRET:
            raise AuthenticationError("Invalid bearer token")

        claims = self._decode_token(token)
        subject = claims.get("sub")
        if not subject:
            raise AuthenticationError("Token missing 'sub' claim")
        return str(subject)

    def _decode_token(self, token: str) -> MutableMapping[str, Any]:
        decode_kwargs: dict[str, Any] = {
            "algorithms": [self._settings.AUTH_TOKEN_ALGORITHM],
        }
        if self._settings.AUTH_TOKEN_AUDIENCE:
            decode_kwargs["audience"] = self._settings.AUTH_TOKEN_AUDIENCE
        if self._settings.AUTH_TOKEN_ISSUER:
            decode_kwargs["issuer"] = self._settings.AUTH_TOKEN_ISSUER
        if self._settings.AUTH_TOKEN_LEEWAY:
            decode_kwargs["leeway"] = self._settings.AUTH_TOKEN_LEEWAY

        try:
            return jwt.decode(token, self._settings.AUTH_TOKEN_SECRET, **decode_kwargs)
        except PyJWTError as exc:
            logger.debug("token_decode_error", exc_info=exc)
            raise AuthenticationError("Invalid authentication token") from exc
