"""Authorization policy tests — pure decisions, no database.

Learn: The policy only sees frozen snapshots, so every rule can be checked
with hand-built ProjectRef/IssueRef/CommentRef values.
"""

import uuid

import pytest

from bugtracker.auth.dependencies import CurrentIdentity
from bugtracker.auth.policy import (
    PARITY_RULES,
    Action,
    CommentRef,
    IssueRef,
    Policy,
    ProjectRef,
    check_role,
)
from bugtracker.errors import Forbidden


def identity(role="user", id=None):
    return CurrentIdentity(id=id or uuid.uuid4(), username="u", email="u@example.com", role=role)


CREATOR = identity()
MEMBER = identity()
OUTSIDER = identity()
ADMIN = identity(role="admin")

PROJECT = ProjectRef(id=uuid.uuid4(), created_by=CREATOR.id, member_ids=frozenset({CREATOR.id, MEMBER.id}))
ISSUE = IssueRef(id=uuid.uuid4(), created_by=MEMBER.id, project=PROJECT)
COMMENT = CommentRef(id=uuid.uuid4(), author=MEMBER.id)


# ═══════════════════════════════════════════════════════════
# Parity rules
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def policy():
    return Policy.for_mode("parity")


def test_view_project_creator_and_members(policy):
    assert policy.decide(CREATOR, Action.VIEW_PROJECT, PROJECT).allowed
    assert policy.decide(MEMBER, Action.VIEW_PROJECT, PROJECT).allowed


def test_view_project_denies_outsider_and_admin(policy):
    """Admin role does not grant project visibility."""
    for who in (OUTSIDER, ADMIN):
        decision = policy.decide(who, Action.VIEW_PROJECT, PROJECT)
        assert not decision.allowed
        assert decision.reason == "Not authorized to view this project"


@pytest.mark.parametrize("action,verb", [
    (Action.UPDATE_PROJECT, "update"),
    (Action.DELETE_PROJECT, "delete"),
])
def test_change_project_creator_or_admin(policy, action, verb):
    assert policy.decide(CREATOR, action, PROJECT).allowed
    assert policy.decide(ADMIN, action, PROJECT).allowed
    denied = policy.decide(MEMBER, action, PROJECT)
    assert not denied.allowed
    assert denied.reason == f"Not authorized to {verb} this project"


def test_parity_issue_create_update_open_to_anyone(policy):
    assert policy.decide(OUTSIDER, Action.CREATE_ISSUE, PROJECT).allowed
    assert policy.decide(OUTSIDER, Action.UPDATE_ISSUE, ISSUE).allowed
    assert policy.decide(OUTSIDER, Action.CREATE_COMMENT, ISSUE).allowed


def test_delete_issue_creator_only(policy):
    assert policy.decide(MEMBER, Action.DELETE_ISSUE, ISSUE).allowed
    for who in (CREATOR, ADMIN, OUTSIDER):
        decision = policy.decide(who, Action.DELETE_ISSUE, ISSUE)
        assert decision.reason == "Not authorized to delete this issue"


def test_delete_comment_author_only(policy):
    assert policy.decide(MEMBER, Action.DELETE_COMMENT, COMMENT).allowed
    assert not policy.decide(ADMIN, Action.DELETE_COMMENT, COMMENT).allowed


def test_authorize_raises_forbidden(policy):
    with pytest.raises(Forbidden) as exc:
        policy.authorize(OUTSIDER, Action.DELETE_PROJECT, PROJECT)
    assert exc.value.status_code == 403
    assert exc.value.message == "Not authorized to delete this project"


def test_decisions_are_deterministic(policy):
    first = policy.decide(OUTSIDER, Action.VIEW_PROJECT, PROJECT)
    second = policy.decide(OUTSIDER, Action.VIEW_PROJECT, PROJECT)
    assert first == second


# ═══════════════════════════════════════════════════════════
# Strict rules and table handling
# ═══════════════════════════════════════════════════════════


def test_strict_requires_membership_for_issue_create():
    policy = Policy.for_mode("strict")
    assert policy.decide(MEMBER, Action.CREATE_ISSUE, PROJECT).allowed
    denied = policy.decide(OUTSIDER, Action.CREATE_ISSUE, PROJECT)
    assert denied.reason == "Not authorized to create issues in this project"


def test_strict_update_issue_member_or_admin():
    policy = Policy.for_mode("strict")
    assert policy.decide(CREATOR, Action.UPDATE_ISSUE, ISSUE).allowed
    assert policy.decide(ADMIN, Action.UPDATE_ISSUE, ISSUE).allowed
    assert not policy.decide(OUTSIDER, Action.UPDATE_ISSUE, ISSUE).allowed


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        Policy.for_mode("lenient")


def test_missing_rule_denies():
    rules = {a: r for a, r in PARITY_RULES.items() if a is not Action.CREATE_COMMENT}
    decision = Policy(rules).decide(CREATOR, Action.CREATE_COMMENT, ISSUE)
    assert not decision.allowed


# ═══════════════════════════════════════════════════════════
# Role restriction
# ═══════════════════════════════════════════════════════════


def test_check_role_allows_listed_role():
    assert check_role(ADMIN, ["admin"]).allowed


def test_check_role_names_actual_role():
    decision = check_role(CREATOR, ["admin"])
    assert decision.reason == "User role user is not authorized to access this route"


def test_check_role_without_identity():
    decision = check_role(None, ["admin", "user"])
    assert not decision.allowed
    assert "none" in decision.reason
