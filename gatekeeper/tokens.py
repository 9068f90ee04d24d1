"""Verification of the signed tokens that carry queries.

A token is both the credential and the request: its claims hold the SQL
text, the positional parameters and the row shape. Verification returns a
``Verdict`` instead of raising so the caller gets a plain trust decision
plus a reason it can log.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

log = logging.getLogger(__name__)

ALGORITHM = "HS256"

# signature and the temporal claims only; aud/sub/jti belong to the issuer
DECODE_OPTIONS = {
    "verify_aud": False,
    "verify_sub": False,
    "verify_jti": False,
    "verify_at_hash": False,
}

Scalar = Union[str, int, float, bool]


class RowMode(enum.Enum):
    ARRAY = "all"
    RECORD = "execute"

    @classmethod
    def from_method(cls, method: Optional[str]) -> "RowMode":
        # anything but "all" gets name-keyed records
        return cls.ARRAY if method == cls.ARRAY.value else cls.RECORD


class RejectReason(enum.Enum):
    EXPIRED = "expired"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    INVALID_CLAIMS = "invalid_claims"


@dataclass(frozen=True)
class QueryClaims:
    sql: str
    params: Tuple[Scalar, ...]
    mode: RowMode
    expires_at: int


@dataclass(frozen=True)
class Verdict:
    claims: Optional[QueryClaims] = None
    reason: Optional[RejectReason] = None

    @property
    def ok(self) -> bool:
        return self.claims is not None

    @classmethod
    def valid(cls, claims: QueryClaims) -> "Verdict":
        return cls(claims=claims)

    @classmethod
    def rejected(cls, reason: RejectReason) -> "Verdict":
        return cls(reason=reason)


class MalformedClaims(ValueError):
    pass


def _scalar(value) -> Scalar:
    # bool is an int subclass, both are fine; None and containers are not
    if isinstance(value, (str, int, float)):
        return value
    raise MalformedClaims(f"unsupported parameter type: {type(value).__name__}")


def parse_claims(payload: dict) -> QueryClaims:
    sql = payload.get("sql")
    if not isinstance(sql, str):
        raise MalformedClaims("sql must be a string")

    params = payload.get("params", [])
    if not isinstance(params, list):
        raise MalformedClaims("params must be a list")

    method = payload.get("method")
    if method is not None and not isinstance(method, str):
        raise MalformedClaims("method must be a string")

    return QueryClaims(
        sql=sql,
        params=tuple(_scalar(p) for p in params),
        mode=RowMode.from_method(method),
        expires_at=int(payload["exp"]),
    )


class TokenVerifier:
    def __init__(self, secret: str, algorithm: str = ALGORITHM):
        if not secret:
            raise ValueError("a signing secret is required")
        self.secret = secret
        self.algorithm = algorithm

    def verify(self, token: str) -> Verdict:
        try:
            return self._verify(token)
        except Exception:
            log.exception("unexpected error while verifying token")
            return Verdict.rejected(RejectReason.MALFORMED)

    def _verify(self, token: str) -> Verdict:
        token = (token or "").strip()
        if not token:
            return Verdict.rejected(RejectReason.MALFORMED)

        # structure first, so that later decode errors can only mean a bad signature
        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except JWTError:
            return Verdict.rejected(RejectReason.MALFORMED)

        if header.get("alg") != self.algorithm:
            return Verdict.rejected(RejectReason.UNSUPPORTED_ALGORITHM)

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm], options=DECODE_OPTIONS)
        except ExpiredSignatureError:
            return Verdict.rejected(RejectReason.EXPIRED)
        except JWTClaimsError:
            return Verdict.rejected(RejectReason.INVALID_CLAIMS)
        except JWTError:
            return Verdict.rejected(RejectReason.INVALID_SIGNATURE)

        # exp is checked by decode only when present
        if "exp" not in payload:
            return Verdict.rejected(RejectReason.INVALID_CLAIMS)

        try:
            claims = parse_claims(payload)
        except MalformedClaims as e:
            log.debug("claims rejected: %s", e)
            return Verdict.rejected(RejectReason.MALFORMED)

        return Verdict.valid(claims)
