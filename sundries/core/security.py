# sundries/core/security.py
"""
Bearer token verification against the identity provider's signing keys.

Keys live in a JwksCache instance (one per app, kept on app.state) rather
than module globals, so tests can hand in a fake fetcher and clock.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests
from jose import jwt, JWTError

from sundries.core.config import settings
from sundries.core.errors import AuthenticationError, UpstreamError

logger = logging.getLogger(__name__)

Jwks = Dict[str, Any]


def fetch_jwks(url: str, timeout: Optional[float] = None) -> Jwks:
    try:
        resp = requests.get(url, timeout=timeout or settings.AUTH_HTTP_TIMEOUT)
    except requests.RequestException as e:
        raise UpstreamError(f"Failed to load JWKS: {e}") from e
    if not resp.ok:
        raise UpstreamError(f"Failed to load JWKS ({resp.status_code})")
    return resp.json()


class JwksCache:
    """
    Read-through (keys, expires_at) cache. Two requests refreshing at the
    same moment both fetch; they store equivalent documents.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        ttl_seconds: Optional[int] = None,
        fetcher: Optional[Callable[[str], Jwks]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url or settings.jwks_url
        self.ttl_seconds = (settings.JWKS_CACHE_TTL_SECONDS
                            if ttl_seconds is None else ttl_seconds)
        self.fetcher = fetcher or fetch_jwks
        self.clock = clock
        self._keys: Optional[Jwks] = None
        self._expires_at: float = 0.0

    def get(self) -> Jwks:
        if self._keys is not None and self.clock() < self._expires_at:
            return self._keys
        keys = self.fetcher(self.url)
        self._keys = keys
        self._expires_at = self.clock() + self.ttl_seconds
        logger.debug("JWKS refreshed from %s", self.url)
        return keys

    def invalidate(self) -> None:
        self._keys = None
        self._expires_at = 0.0


@dataclass
class Principal:
    sub: str
    oid: Optional[str] = None
    upn: Optional[str] = None
    preferred_username: Optional[str] = None
    tid: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    @property
    def username(self) -> Optional[str]:
        return self.upn or self.preferred_username


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _str_claim(claims: Dict[str, Any], name: str) -> Optional[str]:
    v = claims.get(name)
    return v if isinstance(v, str) else None


def extract_roles(claims: Dict[str, Any]) -> List[str]:
    raw = claims.get("roles")
    if raw is None:
        raw = claims.get("groups")
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(r) for r in raw]
    return [str(raw)]


def principal_from_claims(claims: Dict[str, Any]) -> Principal:
    return Principal(
        sub=_str_claim(claims, "sub") or "",
        oid=_str_claim(claims, "oid"),
        upn=_str_claim(claims, "upn"),
        preferred_username=_str_claim(claims, "preferred_username"),
        tid=_str_claim(claims, "tid"),
        roles=extract_roles(claims),
    )


def _signing_key(jwks: Jwks, kid: Optional[str]) -> Optional[Dict[str, Any]]:
    for key in jwks.get("keys") or []:
        if kid is None or key.get("kid") == kid:
            return key
    return None


def decode_token(token: str, cache: JwksCache) -> Dict[str, Any]:
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        raise AuthenticationError("Invalid token")

    kid = header.get("kid")
    key = _signing_key(cache.get(), kid)
    if key is None:
        # signing keys rotated since the last fetch
        cache.invalidate()
        key = _signing_key(cache.get(), kid)
    if key is None:
        raise AuthenticationError("Unknown token signing key")

    try:
        return jwt.decode(
            token,
            key,
            # the key decides the algorithm, never the token header
            algorithms=[key.get("alg") or "RS256"],
            audience=settings.API_AUDIENCE or None,
            issuer=settings.issuer,
            options={"verify_aud": bool(settings.API_AUDIENCE)},
        )
    except JWTError as e:
        raise AuthenticationError("Invalid token", details=str(e))


def verify_bearer(authorization: Optional[str], cache: JwksCache) -> Principal:
    raw = _extract_bearer(authorization)
    if not raw:
        raise AuthenticationError("Missing Bearer token")
    return principal_from_claims(decode_token(raw, cache))
