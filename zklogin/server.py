"""FastAPI binding for the zero-knowledge login coordinator."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import AliasChoices, BaseModel, Field

from .config import Settings
from .coordinator import AUTHENTICATION_FAILED, SessionCoordinator, SessionTokenIssuer
from .errors import (
    ArtifactError,
    NotFoundError,
    StoreFormatError,
    ValidationError,
    VerificationFailedError,
    ZKLoginError,
)

logger = logging.getLogger(__name__)


class EnrollRequest(BaseModel):
    identity: Optional[str] = Field(default=None, validation_alias=AliasChoices("identity", "email"))
    salt: Optional[str] = Field(default=None, validation_alias=AliasChoices("salt", "saltHex"))
    commitment: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("commitment", "commitmentHex")
    )


class OkResponse(BaseModel):
    ok: bool = True


class EnrollmentResponse(BaseModel):
    salt: str
    commitment: str


class LoginRequest(BaseModel):
    identity: Optional[str] = Field(default=None, validation_alias=AliasChoices("identity", "email"))
    # Any shape is accepted here; the coordinator answers malformed proofs with 401.
    proof: Optional[Any] = None
    public_signals: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("publicSignals", "public_signals")
    )


class LoginResponse(BaseModel):
    token: str
    ok: bool = True


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization is None:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _http_error(exc: ZKLoginError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail="User not found")
    if isinstance(exc, VerificationFailedError):
        return HTTPException(status_code=401, detail=AUTHENTICATION_FAILED)
    if isinstance(exc, ArtifactError):
        logger.error("Proving artifacts unavailable: %s", exc)
        return HTTPException(status_code=500, detail="Server artifact unavailable")
    if isinstance(exc, StoreFormatError):
        logger.error("Record store unreadable: %s", exc)
        return HTTPException(status_code=500, detail="Record store unavailable")
    logger.exception("Unexpected login error")
    return HTTPException(status_code=500, detail="Internal error")


def create_app(
    settings: Optional[Settings] = None,
    coordinator: Optional[SessionCoordinator] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    if coordinator is None:
        coordinator = SessionCoordinator(
            settings.create_store(),
            settings.create_registry(),
            SessionTokenIssuer(ttl=settings.session_ttl),
        )

    app = FastAPI(title="zklogin", description="Password login with zero-knowledge proofs")
    app.state.coordinator = coordinator

    @app.post("/signup", response_model=OkResponse)
    async def signup(request: EnrollRequest) -> OkResponse:
        try:
            coordinator.enroll(request.identity, request.salt, request.commitment)
        except ZKLoginError as exc:
            raise _http_error(exc) from exc
        return OkResponse()

    @app.get("/loginData", response_model=EnrollmentResponse)
    async def login_data(identity: Optional[str] = None, email: Optional[str] = None) -> EnrollmentResponse:
        try:
            record = coordinator.fetch_enrollment(identity or email)
        except ValidationError as exc:
            raise HTTPException(status_code=404, detail="User not found") from exc
        except ZKLoginError as exc:
            raise _http_error(exc) from exc
        return EnrollmentResponse(salt=record.salt_hex, commitment=record.commitment_hex)

    @app.post("/login", response_model=LoginResponse)
    async def login(request: LoginRequest) -> LoginResponse:
        try:
            # Pairing checks are CPU bound; keep them off the event loop.
            session = await run_in_threadpool(
                coordinator.authenticate,
                request.identity,
                request.proof,
                request.public_signals,
            )
        except ZKLoginError as exc:
            raise _http_error(exc) from exc
        return LoginResponse(token=session.token)

    @app.delete("/account/{identity}", response_model=OkResponse)
    async def delete_account(identity: str, authorization: Optional[str] = Header(default=None)) -> OkResponse:
        try:
            coordinator.authorize(identity, _bearer_token(authorization))
            coordinator.delete_enrollment(identity)
        except ZKLoginError as exc:
            raise _http_error(exc) from exc
        return OkResponse()

    @app.get("/artifacts/verification_key")
    async def verification_key() -> Dict[str, Any]:
        try:
            key = coordinator.artifacts.verification_key()
        except ZKLoginError as exc:
            raise _http_error(exc) from exc
        return key.to_dict()

    return app


app = create_app()

__all__ = ["app", "create_app"]
