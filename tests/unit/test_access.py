import pytest

from portal.core.access import (
    ANONYMOUS,
    Action,
    AdminPrincipal,
    StaffPrincipal,
    authorize,
    authorize_target,
    can_access_target,
    own_target,
    scope_for,
)
from portal.core.errors import Forbidden, NotFound, Unauthorized
from portal.core.targets import ProfileKind, for_agent, for_employee

ADMIN = AdminPrincipal(user_id=1)
AGENT = StaffPrincipal(user_id=2, role="agent", target=for_agent(10))
FRONTLINE = StaffPrincipal(user_id=3, role="frontline", target=for_employee(20))
UNLINKED = StaffPrincipal(user_id=4, role="agent", target=None)

STAFF_ACTIONS = [Action.READ_RATINGS, Action.READ_COMPLAINTS, Action.READ_OWN_DASHBOARD]
ADMIN_ACTIONS = [a for a in Action if a not in STAFF_ACTIONS]


@pytest.mark.parametrize("action", list(Action))
def test_admin_may_do_everything(action):
    authorize(ADMIN, action)


@pytest.mark.parametrize("action", list(Action))
def test_anonymous_is_unauthorized(action):
    with pytest.raises(Unauthorized):
        authorize(ANONYMOUS, action)


@pytest.mark.parametrize("action", STAFF_ACTIONS)
def test_staff_read_actions(action):
    authorize(AGENT, action)
    authorize(FRONTLINE, action)


@pytest.mark.parametrize("action", ADMIN_ACTIONS)
def test_staff_forbidden_from_admin_actions(action):
    with pytest.raises(Forbidden):
        authorize(AGENT, action)


def test_scope_for():
    assert scope_for(ADMIN) is None
    assert scope_for(AGENT) == for_agent(10)
    assert scope_for(FRONTLINE) == for_employee(20)
    with pytest.raises(Unauthorized):
        scope_for(ANONYMOUS)


def test_unlinked_staff_is_told_to_contact_admin():
    with pytest.raises(NotFound) as excinfo:
        own_target(UNLINKED)
    assert "Please contact an administrator" in excinfo.value.detail
    assert excinfo.value.detail.startswith("Agent profile not found")


def test_staff_kind_follows_role():
    assert AGENT.kind is ProfileKind.AGENT
    assert FRONTLINE.kind is ProfileKind.EMPLOYEE


def test_target_ownership():
    assert can_access_target(ADMIN, for_employee(99))
    assert can_access_target(AGENT, for_agent(10))
    assert not can_access_target(AGENT, for_agent(11))
    # Same id, other kind
    assert not can_access_target(AGENT, for_employee(10))
    assert not can_access_target(ANONYMOUS, for_agent(10))


def test_authorize_target():
    authorize_target(AGENT, for_agent(10))
    with pytest.raises(Forbidden):
        authorize_target(AGENT, for_agent(11))
    with pytest.raises(Unauthorized):
        authorize_target(ANONYMOUS, for_agent(10))
