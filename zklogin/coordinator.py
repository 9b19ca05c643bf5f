"""Enrollment and authentication coordinator.

Per identity the coordinator moves through::

    UNENROLLED -> ENROLLED -> AUTHENTICATING -> AUTHENTICATED

and falls back to ``ENROLLED`` once an attempt finishes, whatever its
outcome. The coordinator never sees a secret; it stores commitments and
checks proofs against them.
"""

from __future__ import annotations

import enum
import logging
import secrets
import threading
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Tuple

from .artifacts import ArtifactRegistry
from .errors import (
    MalformedProofError,
    NotFoundError,
    ValidationError,
    VerificationFailedError,
)
from .engine import verify
from .field import parse_field_element, parse_salt
from .proof import parse_proof, parse_public_signals
from .store import CommitmentRecord, RecordStore

logger = logging.getLogger(__name__)

AUTHENTICATION_FAILED = "Authentication failed"


class AuthState(str, enum.Enum):
    UNENROLLED = "unenrolled"
    ENROLLED = "enrolled"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class SessionToken:
    token: str
    identity: str
    issued_at: datetime
    state: AuthState = AuthState.AUTHENTICATED


class TokenIssuer(Protocol):
    def issue(self, identity: str) -> str:
        ...

    def resolve(self, token: str) -> Optional[str]:
        ...

    def revoke_identity(self, identity: str) -> int:
        ...


class SessionTokenIssuer:
    """Issue opaque bearer tokens and remember which identity holds them.

    Tokens expire ``ttl`` seconds after issue. Expired entries are dropped
    whenever a new token is issued.
    """

    def __init__(self, ttl: float = 3600.0, clock=time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, Tuple[str, float]] = {}

    def issue(self, identity: str) -> str:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires) in self._sessions.items() if expires <= now]
            for key in expired:
                del self._sessions[key]
            self._sessions[token] = (identity, now + self.ttl)
        return token

    def resolve(self, token: str) -> Optional[str]:
        with self._lock:
            entry = self._sessions.get(token)
            if entry is None:
                return None
            identity, expires = entry
            if expires <= self._clock():
                del self._sessions[token]
                return None
            return identity

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def revoke_identity(self, identity: str) -> int:
        """Drop every token held by ``identity`` and return how many there were."""

        with self._lock:
            tokens = [key for key, (holder, _) in self._sessions.items() if holder == identity]
        return sum(self.revoke(token) for token in tokens)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _require_identity(identity: Optional[str]) -> str:
    if not identity or not isinstance(identity, str):
        raise ValidationError("Missing identity")
    return identity


class SessionCoordinator:
    def __init__(
        self,
        store: RecordStore,
        artifacts: ArtifactRegistry,
        token_issuer: Optional[TokenIssuer] = None,
    ) -> None:
        self.store = store
        self.artifacts = artifacts
        self.token_issuer = token_issuer or SessionTokenIssuer()
        self._attempts_lock = threading.Lock()
        self._attempts: Counter = Counter()

    def enroll(self, identity: Optional[str], salt: Any, commitment: Any) -> CommitmentRecord:
        """Store or replace the commitment record for ``identity``."""

        identity = _require_identity(identity)
        if salt is None or commitment is None or salt == "" or commitment == "":
            raise ValidationError("Missing fields")
        record = CommitmentRecord(
            identity=identity,
            salt=parse_salt(salt),
            commitment=parse_field_element(commitment, name="commitment"),
        )
        replaced = self.store.get(identity) is not None
        self.store.put(record)
        if replaced:
            self.token_issuer.revoke_identity(identity)
        logger.info("%s identity %s", "Re-enrolled" if replaced else "Enrolled", identity)
        return record

    def fetch_enrollment(self, identity: Optional[str]) -> CommitmentRecord:
        identity = _require_identity(identity)
        record = self.store.get(identity)
        if record is None:
            raise NotFoundError("User not found")
        return record

    def delete_enrollment(self, identity: Optional[str]) -> None:
        identity = _require_identity(identity)
        if not self.store.delete(identity):
            raise NotFoundError("User not found")
        revoked = self.token_issuer.revoke_identity(identity)
        logger.info("Deleted enrollment for %s (%d sessions revoked)", identity, revoked)

    def authorize(self, identity: Optional[str], token: Optional[str]) -> None:
        """Raise ``VerificationFailedError`` unless ``token`` is a live session of ``identity``."""

        identity = _require_identity(identity)
        if not token or self.token_issuer.resolve(token) != identity:
            raise VerificationFailedError("Invalid session token")

    def state(self, identity: str) -> AuthState:
        with self._attempts_lock:
            if self._attempts[identity]:
                return AuthState.AUTHENTICATING
        if self.store.get(identity) is None:
            return AuthState.UNENROLLED
        return AuthState.ENROLLED

    def authenticate(
        self,
        identity: Optional[str],
        proof: Optional[Any],
        public_signals: Optional[Any],
    ) -> SessionToken:
        """Verify a login proof for ``identity`` and issue a session token.

        Malformed and invalid proofs, including payloads of the wrong type,
        both raise ``VerificationFailedError`` with the same message.
        """

        identity = _require_identity(identity)
        if proof is None or public_signals is None:
            raise ValidationError("Missing fields")
        record = self.fetch_enrollment(identity)
        verification_key = self.artifacts.verification_key()

        with self._attempts_lock:
            self._attempts[identity] += 1
        try:
            try:
                parsed_proof = parse_proof(proof)
                signals = parse_public_signals(public_signals)
                # Bind the proof to the stored commitment with match == 1.
                expected = [record.commitment, 1]
                valid = signals == expected and verify(verification_key, expected, parsed_proof)
            except MalformedProofError as exc:
                logger.info("Rejected malformed proof for %s: %s", identity, exc)
                valid = False
            if not valid:
                logger.info("Authentication failed for %s", identity)
                raise VerificationFailedError(AUTHENTICATION_FAILED)
            token = self.token_issuer.issue(identity)
            logger.info("Authenticated %s", identity)
            return SessionToken(token=token, identity=identity, issued_at=datetime.now(timezone.utc))
        finally:
            with self._attempts_lock:
                self._attempts[identity] -= 1
                if not self._attempts[identity]:
                    del self._attempts[identity]


__all__ = [
    "AUTHENTICATION_FAILED",
    "AuthState",
    "SessionToken",
    "TokenIssuer",
    "SessionTokenIssuer",
    "SessionCoordinator",
]
