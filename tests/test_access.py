"""Tests for role assignment checks."""
from types import SimpleNamespace

import pytest

from kickoff.problems import ProblemError
from kickoff.services.access import (
    Role,
    RoleAssignment,
    assert_competition_admin_access,
    assert_global_admin,
    has_competition_scope,
    has_team_scope,
    is_global_admin,
    role_assignments,
)


def _user(*roles):
    return SimpleNamespace(roles=[SimpleNamespace(role=role, scope_id=scope_id) for role, scope_id in roles])


GLOBAL = _user(("global_admin", None))
COMPETITION_ADMIN = _user(("competition_admin", 1))
TEAM_MANAGER = _user(("team_manager", 7))
NOBODY = _user()


def test_role_assignments_skip_unknown_roles():
    user = _user(("global_admin", None), ("moderator", None), ("team_manager", 3))
    assert role_assignments(user) == [
        RoleAssignment(Role.GLOBAL_ADMIN, None),
        RoleAssignment(Role.TEAM_MANAGER, 3),
    ]
    assert role_assignments(None) == []


@pytest.mark.parametrize(
    "user,competition_id,expected",
    [
        (GLOBAL, 1, True),
        (GLOBAL, 2, True),
        (COMPETITION_ADMIN, 1, True),
        (COMPETITION_ADMIN, 2, False),
        (TEAM_MANAGER, 7, False),
        (NOBODY, 1, False),
    ],
)
def test_competition_scope(user, competition_id, expected):
    assert has_competition_scope(role_assignments(user), competition_id) is expected


@pytest.mark.parametrize(
    "user,team_id,expected",
    [
        (GLOBAL, 7, True),
        (TEAM_MANAGER, 7, True),
        (TEAM_MANAGER, 8, False),
        (COMPETITION_ADMIN, 1, False),
    ],
)
def test_team_scope(user, team_id, expected):
    assert has_team_scope(role_assignments(user), team_id) is expected


def test_global_admin_checks():
    assert is_global_admin(role_assignments(GLOBAL))
    assert not is_global_admin(role_assignments(COMPETITION_ADMIN))
    assert_global_admin(GLOBAL)
    with pytest.raises(ProblemError) as exc:
        assert_global_admin(COMPETITION_ADMIN)
    assert exc.value.status == 403


def test_competition_admin_assertion():
    assert_competition_admin_access(COMPETITION_ADMIN, 1)
    with pytest.raises(ProblemError) as exc:
        assert_competition_admin_access(COMPETITION_ADMIN, 2)
    assert exc.value.status == 403
