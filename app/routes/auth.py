# Authentication routes: BankID session initiation, status polling,
# cancellation and access token exchange.

import time

import jwt
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import AliasChoices, BaseModel, Field
from app.core.config import settings
from app.core.errors import InvalidInput, NotFound
from app.core.security import decode_access_token, is_valid_subject_id, mask_subject_id
from app.services.auth_service import AuthService
from app.services.limiter import limiter
from app.services.logger import log_event

router = APIRouter(prefix="/auth", tags=["auth"])
service = AuthService()


def get_auth_service() -> AuthService:
    return service


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class InitiateReq(BaseModel):
    subject_id: str = Field(validation_alias=AliasChoices("subjectId", "personalNumber"))

class InitiateResp(BaseModel):
    token: str
    orderRef: str
    qrCodeUrl: str


class StatusResp(BaseModel):
    status: str
    hintCode: str | None = None


class CancelReq(BaseModel):
    orderRef: str

class CancelResp(BaseModel):
    cancelled: bool


class TokenReq(BaseModel):
    orderRef: str

class TokenResp(BaseModel):
    access_tkn: str


class MeResp(BaseModel):
    user_id: str
    subject: str
    order_ref: str | None = None


@router.post("/initiate", response_model=InitiateResp)
def initiate_login(req: InitiateReq, request: Request, svc: AuthService = Depends(get_auth_service)):
    limiter.check(request)
    started = time.perf_counter()

    if not is_valid_subject_id(req.subject_id):
        log_event("initiate", None, "invalid_input", _elapsed_ms(started))
        raise HTTPException(status_code=400, detail=f"Personal number must be {settings.SUBJECT_ID_LENGTH} digits")

    result = svc.initiate(req.subject_id)
    log_event("initiate", result.token, "ok", _elapsed_ms(started))
    return InitiateResp(token=result.token, orderRef=result.token, qrCodeUrl=result.qr_code_url)


@router.get("/status", response_model=StatusResp)
def poll_status(orderRef: str, svc: AuthService = Depends(get_auth_service)):
    # Client polls this once per second until complete or failed
    started = time.perf_counter()
    try:
        result = svc.poll_status(orderRef)
    except NotFound:
        log_event("status", orderRef, "not_found", _elapsed_ms(started))
        raise HTTPException(status_code=404, detail="Session not found")

    log_event("status", orderRef, result.status.value, _elapsed_ms(started))
    return StatusResp(status=result.status.value, hintCode=result.hint)


@router.post("/cancel", response_model=CancelResp)
def cancel_session(req: CancelReq, svc: AuthService = Depends(get_auth_service)):
    started = time.perf_counter()
    try:
        cancelled = svc.cancel(req.orderRef)
    except NotFound:
        log_event("cancel", req.orderRef, "not_found", _elapsed_ms(started))
        raise HTTPException(status_code=404, detail="Session not found")

    log_event("cancel", req.orderRef, "ok", _elapsed_ms(started))
    return CancelResp(cancelled=cancelled)


@router.post("/token", response_model=TokenResp)
def exchange_token(req: TokenReq, svc: AuthService = Depends(get_auth_service)):
    # Browser exchanges a completed session for an access token
    started = time.perf_counter()
    try:
        access_token = svc.issue_token(req.orderRef)
    except NotFound:
        log_event("token", req.orderRef, "not_found", _elapsed_ms(started))
        raise HTTPException(status_code=404, detail="Session not found")
    except InvalidInput as e:
        log_event("token", req.orderRef, "rejected", _elapsed_ms(started))
        raise HTTPException(status_code=400, detail=e.message)

    log_event("token", req.orderRef, "ok", _elapsed_ms(started))
    return TokenResp(access_tkn=access_token)


@router.get("/me", response_model=MeResp)
def me(authorization: str | None = Header(default=None), svc: AuthService = Depends(get_auth_service)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")

    try:
        claims = decode_access_token(authorization.split(" ", 1)[1])
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = svc.users.get(claims["sub"])
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")

    return MeResp(user_id=user.id, subject=mask_subject_id(user.subject_id), order_ref=claims.get("order_ref"))
