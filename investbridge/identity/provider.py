"""
Identity provider.

Callers present an HS256 bearer token whose ``sub`` is the identity id and
whose custom claims (notably ``role``) were copied in when the token was
issued. Claims are stored server-side; a token issued before a claim change
keeps the old value until it is re-issued, so the decision engine always
treats the stored user record as authoritative.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import structlog
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from investbridge.config import settings
from investbridge.db.models import IdentityClaimRow
from investbridge.errors import Unauthenticated

logger = structlog.get_logger(__name__)

_RESERVED_CLAIMS = frozenset({"sub", "iat", "exp"})


@dataclass(frozen=True)
class Caller:
    """A verified caller identity and the claims carried by its token."""

    id: str
    claims: dict = field(default_factory=dict)

    @property
    def role(self) -> Optional[str]:
        return self.claims.get("role")


class IdentityProvider(Protocol):
    """What the decision engine needs from the identity service."""

    def verify_caller(self, token: Optional[str]) -> Caller:
        ...

    async def set_claims(self, subject_id: str, claims: dict) -> None:
        ...

    async def get_claims(self, subject_id: str) -> dict:
        ...


class JwtIdentityProvider:
    """Identity provider backed by HS256 tokens and a claims table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self._secret = secret or settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm

    def verify_caller(self, token: Optional[str]) -> Caller:
        """Decode a bearer token. Raises Unauthenticated on any failure."""
        if not token:
            raise Unauthenticated("User must be authenticated.")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            logger.info("token_rejected", reason=str(e))
            raise Unauthenticated("User must be authenticated.") from e

        subject = payload.get("sub")
        if not subject:
            raise Unauthenticated("Token missing subject.")
        claims = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
        return Caller(id=str(subject), claims=claims)

    async def set_claims(self, subject_id: str, claims: dict) -> None:
        """Replace the stored custom claims for an identity."""
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(IdentityClaimRow, subject_id)
                if row is None:
                    session.add(IdentityClaimRow(subject_id=subject_id, claims=dict(claims), updated_at=now))
                else:
                    row.claims = dict(claims)
                    row.updated_at = now
        logger.info("identity_claims_set", subject_id=subject_id, claim_keys=sorted(claims))

    async def get_claims(self, subject_id: str) -> dict:
        async with self._session_factory() as session:
            row = await session.get(IdentityClaimRow, subject_id)
            return dict(row.claims) if row is not None else {}

    async def issue_token(self, subject_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Mint an access token carrying the identity's current claims."""
        claims = await self.get_claims(subject_id)
        return self.encode(subject_id, claims, expires_delta)

    def encode(self, subject_id: str, claims: dict, expires_delta: Optional[timedelta] = None) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.jwt_access_token_expire_minutes)
        now = datetime.now(timezone.utc)
        payload = {
            **{k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS},
            "sub": subject_id,
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)
