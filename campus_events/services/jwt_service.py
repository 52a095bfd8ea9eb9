"""
JWT Service for Campus Events.
Validates tokens issued by the auth service and extracts the caller identity.
"""

import jwt
from typing import Optional, Dict, Any
import logging

from campus_events.core.config import config
from campus_events.models import UserRole
from .event_service import Caller

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("user_id", "role")


class JWTService:
    """
    JWT validation for bearer tokens.
    """

    def __init__(self):
        self.jwt_secret = None
        self.jwt_algorithm = None

    async def _get_config(self):
        """Get JWT configuration."""
        if not self.jwt_secret:
            self.jwt_secret = await config.get_jwt_secret()
            self.jwt_algorithm = await config.get_jwt_algorithm()

    async def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode and validate JWT token.

        Returns:
            Token payload if valid, None otherwise
        """
        await self._get_config()

        try:
            return jwt.decode(token, self.jwt_secret, algorithms=[self.jwt_algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {e}")
            return None

    async def get_caller(self, token: str) -> Optional[Caller]:
        """
        Resolve the caller identity carried by a token.

        Returns:
            Caller if the token is valid and names a known role, None otherwise
        """
        payload = await self.decode_token(token)
        if not payload:
            return None

        if any(not payload.get(claim) for claim in REQUIRED_CLAIMS):
            logger.warning("JWT token is missing user_id or role")
            return None

        if payload["role"] not in {role.value for role in UserRole}:
            logger.warning(f"JWT token carries unknown role: {payload['role']}")
            return None

        return Caller.from_claims(payload)


# Global service instance
jwt_service = JWTService()
