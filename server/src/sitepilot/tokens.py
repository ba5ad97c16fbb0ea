"""Signed session tokens for the operator and visitor scopes.

Tokens are HS256 JWTs. Each scope has its own secret and its own audience,
so a token issued for one scope never verifies in the other:

    operator: {"sub": <operator id>, "username": ..., "aud": "operator"}
    visitor:  {"sub": <visitor username>, "host": ..., "aud": "visitor"}

Tokens are not stored server-side. They stay valid until ``exp``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Mapping, Union

from jose import JWTError, jwt

ALGORITHM = "HS256"
DEFAULT_LIFETIME = timedelta(days=7)


class TokenScope(str, Enum):
    OPERATOR = "operator"
    VISITOR = "visitor"


@dataclass(frozen=True)
class OperatorClaim:
    subject: str
    username: str

    scope = TokenScope.OPERATOR


@dataclass(frozen=True)
class VisitorClaim:
    username: str
    host: str

    scope = TokenScope.VISITOR


Claim = Union[OperatorClaim, VisitorClaim]


class SessionTokenService:
    def __init__(self, secrets: Mapping[TokenScope, str], lifetime: timedelta = DEFAULT_LIFETIME):
        missing = [scope.value for scope in TokenScope if not secrets.get(scope)]
        if missing:
            raise ValueError(f"Missing signing secret for scope(s): {', '.join(missing)}")
        if secrets[TokenScope.OPERATOR] == secrets[TokenScope.VISITOR]:
            raise ValueError("Operator and visitor scopes must use different secrets")
        self._secrets = dict(secrets)
        self.lifetime = lifetime

    def issue(self, claim: Claim) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "aud": claim.scope.value,
            "iat": int(now.timestamp()),
            "exp": int((now + self.lifetime).timestamp()),
        }
        if isinstance(claim, OperatorClaim):
            payload.update(sub=str(claim.subject), username=claim.username)
        elif isinstance(claim, VisitorClaim):
            payload.update(sub=claim.username, host=claim.host)
        else:
            raise TypeError(f"Unsupported claim type: {type(claim).__name__}")
        return jwt.encode(payload, self._secrets[claim.scope], algorithm=ALGORITHM)

    def verify(self, token: str | None, scope: TokenScope, host: str | None = None) -> Claim | None:
        """Return the claim carried by ``token`` or None if it is not valid.

        Visitor tokens are only valid for the host they were issued for, so
        ``host`` is required for the visitor scope.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(
                token, self._secrets[scope], algorithms=[ALGORITHM], audience=scope.value,
            )
        except JWTError:
            return None

        subject = payload.get("sub")
        if not subject:
            return None
        if scope is TokenScope.OPERATOR:
            return OperatorClaim(subject=subject, username=payload.get("username", ""))

        if host is None:
            raise ValueError("host is required to verify a visitor token")
        if payload.get("host") != host:
            return None
        return VisitorClaim(username=subject, host=host)
