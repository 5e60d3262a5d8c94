"""Auth Domain Logic.

Bearer tokens are minted by an external identity service. This module only
validates them: HS256 with a shared secret, or RS256 against a JWKS endpoint.
"""
import jwt
import requests
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta, timezone

from notevault.errors import raise_notevault_error

logger = logging.getLogger(__name__)


class JwtValidator:
    def __init__(self, jwks_url: Optional[str] = None, issuer: Optional[str] = None,
                 audience: Optional[str] = None, secret: Optional[str] = None):
        self.jwks_url = jwks_url
        self.issuer = issuer
        self.audience = audience
        self.secret = secret
        self._jwks_cache: Optional[Dict[str, Any]] = None
        self._jwks_last_fetch: Optional[datetime] = None

    def _fetch_jwks(self) -> Dict[str, Any]:
        if not self.jwks_url:
            return {}

        now = datetime.now(timezone.utc)
        if self._jwks_cache and self._jwks_last_fetch and (now - self._jwks_last_fetch) < timedelta(hours=1):
            return self._jwks_cache

        try:
            response = requests.get(self.jwks_url, timeout=10)
            response.raise_for_status()
            self._jwks_cache = response.json()
            self._jwks_last_fetch = now
            return self._jwks_cache
        except requests.RequestException as e:
            logger.error(f"Failed to fetch JWKS from {self.jwks_url}: {e}")
            if self._jwks_cache:
                return self._jwks_cache
            raise_notevault_error("AUTH_UNAVAILABLE", 503, "Identity provider unavailable")

    def _decode_options(self) -> Dict[str, Any]:
        return {"require": ["exp", "sub"]}

    def validate_token(self, token: str) -> Dict[str, Any]:
        """Validate JWT and return claims."""
        try:
            if self.secret and not self.jwks_url:
                return jwt.decode(
                    token,
                    self.secret,
                    algorithms=["HS256"],
                    audience=self.audience,
                    issuer=self.issuer,
                    options=self._decode_options(),
                )

            kid = jwt.get_unverified_header(token).get("kid")
            public_key = None
            for key in self._fetch_jwks().get("keys", []):
                if key.get("kid") == kid:
                    public_key = jwt.algorithms.RSAAlgorithm.from_jwk(key)
                    break

            if public_key is None:
                raise_notevault_error("AUTH_INVALID", 401, "Invalid token key ID")

            return jwt.decode(
                token,
                public_key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                options=self._decode_options(),
            )
        except jwt.ExpiredSignatureError:
            raise_notevault_error("AUTH_EXPIRED", 401, "Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            raise_notevault_error("AUTH_INVALID", 401, "Not authorized. Invalid token.")


def issue_token(subject: str, secret: str, expires_in: int,
                issuer: Optional[str] = None, audience: Optional[str] = None) -> str:
    """Mint an HS256 token. Development and tests only."""
    now = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": subject,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    if issuer:
        claims["iss"] = issuer
    if audience:
        claims["aud"] = audience
    return jwt.encode(claims, secret, algorithm="HS256")
