"""Auth API routes: login, current user, user management, role grants, invitations."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import select

import config
from kickoff.models import User, UserRole
from kickoff.models.base import async_session_factory
from kickoff.problems import ProblemError, bad_request, conflict, not_found
from kickoff.services.access import Role, parse_role_grant
from kickoff.services.competitions import ensure_role
from kickoff.services.invitations import accept_invitation, create_invitation
from web.api.rate_limit import AUTH_LIMIT, limiter
from web.api.utils import UtcDatetime
from web.auth import (
    create_access_token,
    get_current_user,
    get_user_by_username,
    hash_password,
    require_global_admin_user,
    require_user,
    verify_password,
)

logger = logging.getLogger("kickoff.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


class RoleResponse(BaseModel):
    id: int
    role: str
    scope_type: str
    scope_id: Optional[int] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    roles: list[RoleResponse]


class UserResponse(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    roles: list[RoleResponse]


class CreateUserRequest(BaseModel):
    username: str
    password: str
    email: Optional[str] = None


class UpdateUserRequest(BaseModel):
    password: Optional[str] = None
    email: Optional[str] = None


class GrantRoleRequest(BaseModel):
    role: str  # global_admin, competition_admin, team_manager
    scope_id: Optional[int] = None


class InvitationRequest(BaseModel):
    email: str
    role: str
    scope_id: Optional[int] = None
    expires_at: Optional[datetime] = None


class InvitationResponse(BaseModel):
    id: int
    email: str
    role: str
    scope_type: str
    scope_id: Optional[int] = None
    token: str
    expires_at: UtcDatetime
    accepted_at: Optional[UtcDatetime] = None


class AcceptInvitationRequest(BaseModel):
    token: str
    username: Optional[str] = None  # new account only
    password: Optional[str] = None


class AcceptInvitationResponse(BaseModel):
    invitation: InvitationResponse
    role: RoleResponse
    user: UserResponse
    access_token: str
    token_type: str = "bearer"


def _roles(user: User) -> list[RoleResponse]:
    return [
        RoleResponse(id=r.id, role=r.role, scope_type=r.scope_type, scope_id=r.scope_id)
        for r in sorted(user.roles or [], key=lambda r: r.id)
    ]


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, username=user.username, email=user.email, roles=_roles(user))


async def _load_user(session, username: str) -> User:
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if not user:
        raise not_found("User")
    return user


def _invalid_credentials() -> ProblemError:
    return ProblemError(401, "Authentication failed", "Invalid username or password")


@router.post("/login", response_model=LoginResponse)
@limiter.limit(AUTH_LIMIT)
async def login(request: Request, body: LoginRequest):
    """Authenticate and return JWT."""
    user = await get_user_by_username(body.username)
    if not user:
        # Bootstrap: if INITIAL_ADMIN_PASSWORD is set and matches, create global admin
        if (
            config.INITIAL_ADMIN_PASSWORD
            and body.username == config.INITIAL_ADMIN_USERNAME
            and body.password == config.INITIAL_ADMIN_PASSWORD
        ):
            async with async_session_factory() as session:
                user = User(
                    username=config.INITIAL_ADMIN_USERNAME,
                    password_hash=hash_password(config.INITIAL_ADMIN_PASSWORD),
                )
                session.add(user)
                await session.flush()
                await ensure_role(session, user.id, Role.GLOBAL_ADMIN.value)
                await session.commit()
            logger.info("Bootstrapped initial admin %s", config.INITIAL_ADMIN_USERNAME)
            user = await get_user_by_username(config.INITIAL_ADMIN_USERNAME)
            return LoginResponse(access_token=create_access_token(user), username=user.username, roles=_roles(user))
        raise _invalid_credentials()
    if not verify_password(body.password, user.password_hash):
        raise _invalid_credentials()
    return LoginResponse(access_token=create_access_token(user), username=user.username, roles=_roles(user))


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(require_user)):
    """Get current authenticated user."""
    return _user_response(user)


@router.get("/me/optional")
async def get_me_optional(user: Optional[User] = Depends(get_current_user)):
    """Get current user if logged in, else null. For frontend auth check."""
    if not user:
        return None
    return _user_response(user)


@router.get("/users", response_model=list[UserResponse])
async def list_users(admin: User = Depends(require_global_admin_user)):
    """List all users (global admin only)."""
    async with async_session_factory() as session:
        result = await session.execute(select(User).order_by(User.username))
        return [_user_response(u) for u in result.scalars().all()]


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(body: CreateUserRequest, admin: User = Depends(require_global_admin_user)):
    """Create a new user without roles (global admin only)."""
    username = body.username.strip()
    if not username or not body.password:
        raise bad_request("Username and password are required.")
    async with async_session_factory() as session:
        existing = await session.execute(select(User).where(User.username == username))
        if existing.scalar_one_or_none():
            raise conflict("Username already exists", slug="username-conflict")
        session.add(
            User(
                username=username,
                password_hash=hash_password(body.password),
                email=(body.email or "").strip() or None,
            )
        )
        await session.commit()
    return _user_response(await get_user_by_username(username))


@router.patch("/users/{username}", response_model=UserResponse)
async def update_user(username: str, body: UpdateUserRequest, admin: User = Depends(require_global_admin_user)):
    """Update user password or email (global admin only)."""
    async with async_session_factory() as session:
        user = await _load_user(session, username)
        if body.password is not None:
            user.password_hash = hash_password(body.password)
        if body.email is not None:
            user.email = body.email.strip() or None
        await session.commit()
    return _user_response(await get_user_by_username(username))


@router.delete("/users/{username}")
async def delete_user(username: str, admin: User = Depends(require_global_admin_user)):
    """Delete a user (global admin only). Cannot delete self."""
    if username == admin.username:
        raise bad_request("Cannot delete your own account")
    async with async_session_factory() as session:
        user = await _load_user(session, username)
        await session.delete(user)
        await session.commit()
        return {"ok": True}


@router.post("/users/{username}/roles", response_model=UserResponse, status_code=201)
async def grant_role(username: str, body: GrantRoleRequest, admin: User = Depends(require_global_admin_user)):
    """Grant a role. Competition and team roles need a scope_id; global_admin takes none."""
    role, scope_type = parse_role_grant(body.role, body.scope_id)
    async with async_session_factory() as session:
        user = await _load_user(session, username)
        await ensure_role(session, user.id, role.value, scope_type, body.scope_id, granted_by=admin.id)
        await session.commit()
    logger.info("Granted %s (scope=%s) to %s", role.value, body.scope_id, username)
    return _user_response(await get_user_by_username(username))


@router.delete("/users/{username}/roles/{role_id}", response_model=UserResponse)
async def revoke_role(username: str, role_id: int, admin: User = Depends(require_global_admin_user)):
    """Revoke a role assignment (global admin only)."""
    async with async_session_factory() as session:
        user = await _load_user(session, username)
        assignment = await session.get(UserRole, role_id)
        if not assignment or assignment.user_id != user.id:
            raise not_found("Role assignment")
        await session.delete(assignment)
        await session.commit()
    return _user_response(await get_user_by_username(username))


def _invitation_response(invitation) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        scope_type=invitation.scope_type,
        scope_id=invitation.scope_id,
        token=invitation.token,
        expires_at=invitation.expires_at,
        accepted_at=invitation.accepted_at,
    )


@router.post("/invitations", response_model=InvitationResponse, status_code=201)
async def invite(body: InvitationRequest, user: User = Depends(require_user)):
    """Invite an email address to a role (global or competition admins)."""
    async with async_session_factory() as session:
        invitation = await create_invitation(
            session, user, body.email, body.role, scope_id=body.scope_id, expires_at=body.expires_at
        )
    return _invitation_response(invitation)


@router.post("/invitations/accept", response_model=AcceptInvitationResponse)
@limiter.limit(AUTH_LIMIT)
async def accept_invite(
    request: Request, body: AcceptInvitationRequest, user: Optional[User] = Depends(get_current_user)
):
    """Accept an invitation as the signed-in user, or create an account for the invited email."""
    async with async_session_factory() as session:
        if user is not None:
            invitation, assignment, account = await accept_invitation(session, body.token, user_id=user.id)
        else:
            invitation, assignment, account = await accept_invitation(
                session,
                body.token,
                username=body.username,
                password_hash=hash_password(body.password) if body.password else None,
            )
    account = await get_user_by_username(account.username)
    return AcceptInvitationResponse(
        invitation=_invitation_response(invitation),
        role=RoleResponse(
            id=assignment.id, role=assignment.role, scope_type=assignment.scope_type, scope_id=assignment.scope_id
        ),
        user=_user_response(account),
        access_token=create_access_token(account),
    )
