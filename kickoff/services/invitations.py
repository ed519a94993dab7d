"""Invitation-based onboarding: admins invite an email address to a role."""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from kickoff.models import RoleInvitation, User, UserRole
from kickoff.problems import ProblemError, bad_request, conflict, forbidden, not_found, problem_type
from kickoff.services.access import (
    Role,
    assert_competition_admin_access,
    assert_global_admin,
    assert_team_access,
    has_role,
    is_global_admin,
    parse_role_grant,
    role_assignments,
)
from kickoff.services.competitions import ensure_role, get_competition
from kickoff.services.teams import get_team
from kickoff.services.timeutil import to_naive_utc, utcnow

logger = logging.getLogger("kickoff.invitations")


def normalize_email(value: Optional[str]) -> str:
    email = (value or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or not domain or " " in email:
        raise bad_request("Provide a valid email address.", slug="invalid-email", title="Invalid email")
    return email


def _expiry(expires_at: Optional[datetime]) -> datetime:
    now = utcnow()
    if expires_at is None:
        return now + timedelta(days=config.INVITATION_TTL_DAYS)
    expires_at = to_naive_utc(expires_at)
    if expires_at <= now:
        raise bad_request("Invitation expiry must be in the future.", slug="invalid-invitation-expiry")
    return expires_at


async def _assert_can_invite(session: AsyncSession, inviter: User, role: Role, scope_id: Optional[int]) -> None:
    roles = role_assignments(inviter)
    if not (is_global_admin(roles) or has_role(roles, Role.COMPETITION_ADMIN)):
        raise forbidden("Only administrators can send invitations.")
    if role == Role.GLOBAL_ADMIN:
        assert_global_admin(inviter)
    elif role == Role.COMPETITION_ADMIN:
        await get_competition(session, scope_id)
        assert_competition_admin_access(inviter, scope_id)
    else:
        await get_team(session, scope_id)
        await assert_team_access(session, inviter, scope_id)


async def create_invitation(
    session: AsyncSession,
    inviter: User,
    email: str,
    role: str,
    scope_id: Optional[int] = None,
    expires_at: Optional[datetime] = None,
) -> RoleInvitation:
    """Create a single-use invitation token for a role grant.

    Global admins can invite to any role. Competition admins can invite
    admins for their own competitions and managers for teams entered in them.
    """
    role_value, scope_type = parse_role_grant(role, scope_id)
    email = normalize_email(email)
    expiry = _expiry(expires_at)
    await _assert_can_invite(session, inviter, role_value, scope_id)

    invitation = RoleInvitation(
        email=email,
        role=role_value.value,
        scope_type=scope_type,
        scope_id=scope_id,
        invited_by=inviter.id,
        token=secrets.token_urlsafe(32),
        expires_at=expiry,
    )
    session.add(invitation)
    await session.commit()
    logger.info("Invitation %s created by user %s for %s as %s", invitation.id, inviter.id, email, role_value.value)
    return invitation


async def _load_pending(session: AsyncSession, token: str) -> RoleInvitation:
    token = (token or "").strip()
    if not token:
        raise bad_request("The invitation token is missing.", slug="missing-invitation-token")
    result = await session.execute(select(RoleInvitation).where(RoleInvitation.token == token))
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise not_found(
            "Invitation",
            detail="The invitation token is invalid or has been revoked.",
            slug="invitation-not-found",
        )
    if invitation.accepted_at is not None:
        raise conflict("This invitation has already been accepted.", slug="invitation-already-accepted")
    if invitation.expires_at <= utcnow():
        raise ProblemError(
            410,
            "Invitation expired",
            "This invitation has expired. Ask for a new one.",
            type=problem_type("invitation-expired"),
        )
    return invitation


async def accept_invitation(
    session: AsyncSession,
    token: str,
    user_id: Optional[int] = None,
    username: Optional[str] = None,
    password_hash: Optional[str] = None,
) -> tuple[RoleInvitation, UserRole, User]:
    """Redeem an invitation.

    A signed-in user links the role to their account; their email must match
    the invitation (a user without an email takes the invited one). Without a
    user id a new account is created from username and password_hash.
    """
    invitation = await _load_pending(session, token)

    if user_id is not None:
        user = await session.get(User, user_id)
        if user is None:
            raise not_found("User")
        if user.email is None:
            user.email = invitation.email
        elif user.email.strip().lower() != invitation.email:
            raise bad_request(
                "Sign in with the email address the invitation was sent to.",
                slug="email-mismatch",
                title="Email mismatch",
            )
    else:
        username = (username or "").strip()
        if not username or not password_hash:
            raise bad_request("Username and password are required to create an account.")
        existing = await session.execute(select(User.id).where(User.username == username))
        if existing.scalar_one_or_none() is not None:
            raise conflict("Username already exists", slug="username-conflict")
        user = User(username=username, password_hash=password_hash, email=invitation.email)
        session.add(user)
        await session.flush()

    assignment = await ensure_role(
        session,
        user.id,
        invitation.role,
        invitation.scope_type,
        invitation.scope_id,
        granted_by=invitation.invited_by,
    )
    invitation.accepted_at = utcnow()
    invitation.accepted_by = user.id
    await session.commit()
    logger.info("Invitation %s accepted by user %s", invitation.id, user.id)
    return invitation, assignment, user
