from __future__ import annotations

import logging
from typing import Optional

import jwt

logger = logging.getLogger(__name__)


class AccountAuthService:
    """Resolves the authenticated account id from a signed bearer token."""

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        if not secret_key:
            raise RuntimeError("ACCOUNT_TOKEN_SECRET is not configured.")
        if secret_key == "change-me":
            logger.warning(
                "ACCOUNT_TOKEN_SECRET is using the default value. Configure a strong secret in production."
            )
        self._secret_key = secret_key
        self._algorithm = algorithm

    def verify_token(self, token: str) -> Optional[int]:
        """
        Verify and decode a bearer token.

        Args:
            token: JWT token string

        Returns:
            Account id from the ``sub`` claim if valid, None otherwise
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.InvalidTokenError:
            return None

        subject = payload.get("sub")
        try:
            return int(subject)
        except (TypeError, ValueError):
            return None
