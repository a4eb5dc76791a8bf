"""Role policies decide scope without touching handlers."""

import pytest

from app.models.user import UserRole
from app.services.policies import (
    policy_for, Action, AdminPolicy, ManagerPolicy, EmployeePolicy, team_member_ids_for_manager,
)
from conftest import as_current


@pytest.fixture
def org(make_user, make_team):
    admin = make_user(role=UserRole.admin)
    manager = make_user(role=UserRole.manager)
    other_manager = make_user(role=UserRole.manager)
    member = make_user()
    outsider = make_user()
    team = make_team(manager, members=[member])
    other_team = make_team(other_manager, members=[outsider], name="Other")
    return dict(admin=admin, manager=manager, other_manager=other_manager,
                member=member, outsider=outsider, team=team, other_team=other_team)


def test_policy_for_dispatches_on_role(org):
    assert isinstance(policy_for(as_current(org["admin"])), AdminPolicy)
    assert isinstance(policy_for(as_current(org["manager"])), ManagerPolicy)
    assert isinstance(policy_for(as_current(org["member"])), EmployeePolicy)


@pytest.mark.parametrize("action", list(Action))
def test_admin_can_do_everything(db, org, action):
    policy = policy_for(as_current(org["admin"]))
    assert policy.can_access(db, org["outsider"].id, action) is True
    assert policy.visible_user_ids(db) is None


@pytest.mark.parametrize("action", list(Action))
def test_manager_scope_is_self_and_own_team(db, org, action):
    policy = policy_for(as_current(org["manager"]))
    assert policy.can_access(db, org["manager"].id, action) is True
    assert policy.can_access(db, org["member"].id, action) is True
    assert policy.can_access(db, org["outsider"].id, action) is False
    assert policy.can_access(db, org["other_manager"].id, action) is False


def test_manager_visible_users(db, org):
    policy = policy_for(as_current(org["manager"]))
    assert sorted(policy.visible_user_ids(db)) == sorted([org["manager"].id, org["member"].id])


def test_employee_reads_and_creates_only_own(db, org):
    policy = policy_for(as_current(org["member"]))
    assert policy.can_access(db, org["member"].id, Action.read) is True
    assert policy.can_access(db, org["member"].id, Action.create) is True
    assert policy.can_access(db, org["outsider"].id, Action.read) is False
    assert policy.can_access(db, org["outsider"].id, Action.create) is False
    assert policy.visible_user_ids(db) == [org["member"].id]


def test_employee_never_updates_or_deletes(db, org):
    policy = policy_for(as_current(org["member"]))
    assert policy.can_access(db, org["member"].id, Action.update) is False
    assert policy.can_access(db, org["member"].id, Action.delete) is False


def test_team_visibility(db, org):
    team = org["team"]
    assert policy_for(as_current(org["admin"])).can_view_team(db, team) is True
    assert policy_for(as_current(org["manager"])).can_view_team(db, team) is True
    assert policy_for(as_current(org["member"])).can_view_team(db, team) is True
    assert policy_for(as_current(org["outsider"])).can_view_team(db, team) is False
    assert policy_for(as_current(org["other_manager"])).can_view_team(db, team) is False


def test_member_of_several_managed_teams_is_listed_once(db, org, make_team):
    make_team(org["manager"], members=[org["member"]], name="Second")
    assert team_member_ids_for_manager(db, org["manager"].id) == [org["member"].id]
