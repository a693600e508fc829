"""Auth API — registration, login, current user, user listing.

Learn: Routes for account lifecycle:
- POST /auth/register → create a 'user' account, return user + token
- POST /auth/login → email/password → user + token
- GET /auth/me → current user info
- GET /auth/users → every account (admin only)

There is no way to become admin through this API: register ignores any
`role` key and nothing updates roles. Admins come from the CLI.
"""

from fastapi import APIRouter, Depends

from tasktrack.auth.dependencies import (
    get_current_identity,
    get_token_service,
    requires_role,
)
from tasktrack.auth.identity import Identity, Role
from tasktrack.auth.jwt import TokenService
from tasktrack.auth.password import dummy_hash, hash_password
from tasktrack.errors import Conflict, NotFound, Unauthenticated
from tasktrack.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserRead
from tasktrack.stores.base import UserStore
from tasktrack.stores.sql import get_user_store

router = APIRouter(prefix="/auth")


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Create a new user account."""
    # Check email uniqueness
    if await users.find_user_by_email(body.email):
        raise Conflict("User already exists with this email")

    user = await users.create_user(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        role=Role.USER,
    )
    return AuthResponse(
        user=UserRead.model_validate(user),
        token=tokens.issue(user.id, user.role),
    )


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
):
    """Login with email and password → JWT token."""
    user = await users.find_user_by_email(body.email)
    # Unknown emails still pay for one bcrypt check
    password_hash = user.password_hash if user else dummy_hash()
    if not users.verify_password(body.password, password_hash) or user is None:
        raise Unauthenticated("Invalid credentials")

    return AuthResponse(
        user=UserRead.model_validate(user),
        token=tokens.issue(user.id, user.role),
    )


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: Identity = Depends(get_current_identity),
    users: UserStore = Depends(get_user_store),
):
    """Get the current authenticated user's info."""
    user = await users.find_user_by_id(identity.user_id)
    if not user:
        raise NotFound("User not found")
    return user


# ─── Admin ──────────────────────────────────────────────


@router.get("/users", response_model=list[UserRead])
async def list_users(
    identity: Identity = Depends(requires_role(Role.ADMIN)),
    users: UserStore = Depends(get_user_store),
):
    """List every account (admin only)."""
    return await users.list_users()
