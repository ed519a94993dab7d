"""Role and scope checks for admin operations.

A user holds a list of role assignments. Each is one of a closed set of roles
plus the id of the competition or team it applies to (none for global).
"""
from __future__ import annotations

from enum import Enum
from typing import Iterable, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kickoff.models import Edition, Entry, User
from kickoff.problems import bad_request, forbidden, not_found


class Role(str, Enum):
    GLOBAL_ADMIN = "global_admin"
    COMPETITION_ADMIN = "competition_admin"
    TEAM_MANAGER = "team_manager"


# Scope type each role is granted with
ROLE_SCOPES = {
    Role.GLOBAL_ADMIN: "global",
    Role.COMPETITION_ADMIN: "competition",
    Role.TEAM_MANAGER: "team",
}


def parse_role_grant(role_name: str, scope_id: Optional[int]) -> tuple[Role, str]:
    """Validate a role name against its scope. Returns the role and scope type."""
    try:
        role = Role(role_name)
    except ValueError:
        raise bad_request(f'Role "{role_name}" is not supported.', slug="invalid-role") from None
    scope_type = ROLE_SCOPES[role]
    if scope_type == "global" and scope_id is not None:
        raise bad_request("global_admin cannot be scoped.", slug="invalid-role-scope")
    if scope_type != "global" and scope_id is None:
        raise bad_request(f"{role.value} requires a scope_id.", slug="invalid-role-scope")
    return role, scope_type


class RoleAssignment(NamedTuple):
    role: Role
    scope_id: Optional[int] = None


def role_assignments(user: Optional[User]) -> list[RoleAssignment]:
    """Assignments for a user, skipping rows with unknown role names."""
    if user is None:
        return []
    assignments = []
    for row in user.roles or []:
        try:
            role = Role(row.role)
        except ValueError:
            continue
        assignments.append(RoleAssignment(role, row.scope_id))
    return assignments


def has_role(roles: Iterable[RoleAssignment], role: Role) -> bool:
    return any(assignment.role == role for assignment in roles)


def is_global_admin(roles: Iterable[RoleAssignment]) -> bool:
    return has_role(roles, Role.GLOBAL_ADMIN)


def has_competition_scope(roles: Iterable[RoleAssignment], competition_id: int) -> bool:
    roles = list(roles)
    if is_global_admin(roles):
        return True
    return any(
        assignment.role == Role.COMPETITION_ADMIN and assignment.scope_id == competition_id
        for assignment in roles
    )


def has_team_scope(roles: Iterable[RoleAssignment], team_id: int) -> bool:
    roles = list(roles)
    if is_global_admin(roles):
        return True
    return any(
        assignment.role == Role.TEAM_MANAGER and assignment.scope_id == team_id
        for assignment in roles
    )


def assert_global_admin(user: User) -> None:
    if not is_global_admin(role_assignments(user)):
        raise forbidden("Only global administrators can perform this action.")


def assert_competition_admin_access(user: User, competition_id: int) -> None:
    if not has_competition_scope(role_assignments(user), competition_id):
        raise forbidden("You do not administer this competition.")


async def assert_edition_admin_access(session: AsyncSession, user: User, edition_id: int) -> Edition:
    edition = await session.get(Edition, edition_id)
    if edition is None:
        raise not_found("Edition", slug="edition-not-found")
    assert_competition_admin_access(user, edition.competition_id)
    return edition


async def _competition_ids_for_team(session: AsyncSession, team_id: int) -> set[int]:
    result = await session.execute(
        select(Edition.competition_id).join(Entry, Entry.edition_id == Edition.id).where(Entry.team_id == team_id)
    )
    return set(result.scalars().all())


async def assert_team_access(session: AsyncSession, user: User, team_id: int) -> None:
    """Team managers of the team, admins of a competition the team entered, or global admins."""
    roles = role_assignments(user)
    if has_team_scope(roles, team_id):
        return
    competition_ids = await _competition_ids_for_team(session, team_id)
    if any(has_competition_scope(roles, competition_id) for competition_id in competition_ids):
        return
    raise forbidden("You do not manage this team.")


async def assert_entry_access(session: AsyncSession, user: User, entry_id: int) -> Entry:
    entry = await session.get(Entry, entry_id)
    if entry is None:
        raise not_found("Entry", slug="entry-not-found")
    roles = role_assignments(user)
    if has_team_scope(roles, entry.team_id):
        return entry
    edition = await session.get(Edition, entry.edition_id)
    if edition is not None and has_competition_scope(roles, edition.competition_id):
        return entry
    raise forbidden("You do not have access to this entry.")


async def assert_team_entry_create_access(
    session: AsyncSession, user: User, team_id: int, edition_id: int
) -> None:
    roles = role_assignments(user)
    if has_team_scope(roles, team_id):
        return
    edition = await session.get(Edition, edition_id)
    if edition is None:
        raise not_found("Edition", slug="edition-not-found")
    if has_competition_scope(roles, edition.competition_id):
        return
    raise forbidden("You cannot register this team for the edition.")
