"""
api/routes/users.py -- Registration and login endpoints.

Routes:
  POST /user   -- register a user; 201 with the user (never the hash)
  POST /login  -- email/password login; 200 with identity and token

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Unknown email and wrong password return the same 400 message.
  Cache-Control: no-store on every login response, success or failure.
  isAdmin in the registration body is honoured only when ALLOW_ADMIN_SIGNUP
  is enabled; otherwise the request is refused with 403.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import ErrorResponse, LoginRequest, LoginResponse, UserCreate, UserResponse
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService, authenticate_user, hash_password
from core.config import Settings
from core.errors import ForbiddenError, InvalidCredentialsError, StorageUnavailableError, storage_errors

logger = logging.getLogger("agenda.api")

# Auth policy: both routes are public.
router = APIRouter()


@router.post("/user", response_model=UserResponse, status_code=201)
def create_user(request: Request, body: UserCreate) -> UserResponse:
    """Register a new account.

    The password is hashed before it reaches the store. A duplicate email
    fails with DuplicateEmailError (400), raised by the store's UNIQUE check.
    """
    settings: Settings = request.app.state.settings
    user_store: UserStore = request.app.state.user_store

    if body.is_admin and not settings.allow_admin_signup:
        raise ForbiddenError("Cadastro de administradores desabilitado.")

    new_user = User(
        name=body.name,
        email=body.email,
        hashed_password=hash_password(body.password),
        is_admin=body.is_admin,
    )
    with storage_errors("Erro ao criar usuário."):
        user_id = user_store.create_user(new_user)
        created = user_store.get_by_id(user_id)
    if created is None:
        raise StorageUnavailableError("Erro ao criar usuário.")

    logger.info("User %s registered (admin=%s)", user_id, created.is_admin)
    return UserResponse(
        id=created.id,
        name=created.name,
        email=created.email,
        is_admin=created.is_admin,
        created_at=created.created_at or "",
    )


@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return identity plus a signed token."""
    user_store: UserStore = request.app.state.user_store
    token_service: TokenService = request.app.state.token_service

    try:
        with storage_errors("Erro ao realizar login."):
            user = authenticate_user(user_store, body.email, body.password)
    except InvalidCredentialsError as exc:
        resp = JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message).model_dump(),
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = token_service.issue(user)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            is_admin=user.is_admin,
            token=token,
        ).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
