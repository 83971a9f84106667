"""Authorization policy — who may do what to which entity.

Learn: decide() is a pure function of (identity, action, resource snapshot).
It never touches the database: routes load the entity, turn it into a
frozen *Ref snapshot, and ask the policy. The same inputs always produce
the same Decision, which makes the rules trivially unit-testable.

Two rule sets ship:
- PARITY_RULES: the historical behaviour. Any authenticated user may
  create or update issues in any project; only the creator may delete.
- STRICT_RULES: issue create/update additionally require project
  membership (update also allows admins).

Pick one with Settings.policy_mode.
"""

import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional, Protocol

from bugtracker.errors import Forbidden


class Action(str, Enum):
    VIEW_PROJECT = "project:view"
    UPDATE_PROJECT = "project:update"
    DELETE_PROJECT = "project:delete"
    CREATE_ISSUE = "issue:create"
    UPDATE_ISSUE = "issue:update"
    DELETE_ISSUE = "issue:delete"
    CREATE_COMMENT = "comment:create"
    DELETE_COMMENT = "comment:delete"


class IdentityLike(Protocol):
    id: uuid.UUID
    role: Optional[str]


# ─── Resource snapshots ──────────────────────────────────


@dataclass(frozen=True)
class ProjectRef:
    id: uuid.UUID
    created_by: uuid.UUID
    member_ids: frozenset[uuid.UUID] = field(default_factory=frozenset)

    @classmethod
    def from_model(cls, project) -> "ProjectRef":
        return cls(
            id=project.id,
            created_by=project.created_by_id,
            member_ids=frozenset(m.user_id for m in project.members),
        )


@dataclass(frozen=True)
class IssueRef:
    id: uuid.UUID
    created_by: uuid.UUID
    project: Optional[ProjectRef] = None

    @classmethod
    def from_model(cls, issue, project=None) -> "IssueRef":
        return cls(
            id=issue.id,
            created_by=issue.created_by_id,
            project=ProjectRef.from_model(project) if project is not None else None,
        )


@dataclass(frozen=True)
class CommentRef:
    id: uuid.UUID
    author: uuid.UUID

    @classmethod
    def from_model(cls, comment) -> "CommentRef":
        return cls(id=comment.id, author=comment.author_id)


# ─── Decisions ───────────────────────────────────────────


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise Forbidden(self.reason)


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


Rule = Callable[[IdentityLike, Any], Decision]


# ─── Rules ───────────────────────────────────────────────


def _is_admin(identity: IdentityLike) -> bool:
    return identity.role == "admin"


def _is_project_member(identity: IdentityLike, project: ProjectRef) -> bool:
    return identity.id == project.created_by or identity.id in project.member_ids


def _view_project(identity: IdentityLike, project: ProjectRef) -> Decision:
    if _is_project_member(identity, project):
        return ALLOW
    return deny("Not authorized to view this project")


def _change_project(verb: str) -> Rule:
    def rule(identity: IdentityLike, project: ProjectRef) -> Decision:
        if identity.id == project.created_by or _is_admin(identity):
            return ALLOW
        return deny(f"Not authorized to {verb} this project")

    return rule


def _any_authenticated(identity: IdentityLike, resource: Any) -> Decision:
    return ALLOW


def _delete_issue(identity: IdentityLike, issue: IssueRef) -> Decision:
    if identity.id == issue.created_by:
        return ALLOW
    return deny("Not authorized to delete this issue")


def _delete_comment(identity: IdentityLike, comment: CommentRef) -> Decision:
    if identity.id == comment.author:
        return ALLOW
    return deny("Not authorized to delete this comment")


def _create_issue_as_member(identity: IdentityLike, project: ProjectRef) -> Decision:
    if _is_project_member(identity, project):
        return ALLOW
    return deny("Not authorized to create issues in this project")


def _update_issue_as_member(identity: IdentityLike, issue: IssueRef) -> Decision:
    if _is_admin(identity):
        return ALLOW
    if issue.project is not None and _is_project_member(identity, issue.project):
        return ALLOW
    return deny("Not authorized to update this issue")


PARITY_RULES: Mapping[Action, Rule] = MappingProxyType({
    Action.VIEW_PROJECT: _view_project,
    Action.UPDATE_PROJECT: _change_project("update"),
    Action.DELETE_PROJECT: _change_project("delete"),
    # No membership or ownership check on issue create/update (see STRICT_RULES).
    Action.CREATE_ISSUE: _any_authenticated,
    Action.UPDATE_ISSUE: _any_authenticated,
    Action.DELETE_ISSUE: _delete_issue,
    Action.CREATE_COMMENT: _any_authenticated,
    Action.DELETE_COMMENT: _delete_comment,
})

STRICT_RULES: Mapping[Action, Rule] = MappingProxyType({
    **PARITY_RULES,
    Action.CREATE_ISSUE: _create_issue_as_member,
    Action.UPDATE_ISSUE: _update_issue_as_member,
})

RULE_SETS: Mapping[str, Mapping[Action, Rule]] = MappingProxyType({
    "parity": PARITY_RULES,
    "strict": STRICT_RULES,
})


class Policy:
    """A fixed table of rules, one per action."""

    def __init__(self, rules: Mapping[Action, Rule] = PARITY_RULES):
        self.rules = MappingProxyType(dict(rules))

    @classmethod
    def for_mode(cls, mode: str) -> "Policy":
        try:
            return cls(RULE_SETS[mode])
        except KeyError:
            raise ValueError(f"Unknown policy mode {mode!r}; expected one of {sorted(RULE_SETS)}")

    def decide(self, identity: IdentityLike, action: Action, resource: Any) -> Decision:
        """Evaluate one action. Unknown actions are denied."""
        rule = self.rules.get(action)
        if rule is None:
            return deny(f"No policy rule for action {action.value}")
        return rule(identity, resource)

    def authorize(self, identity: IdentityLike, action: Action, resource: Any) -> None:
        """decide() + raise Forbidden on denial."""
        self.decide(identity, action, resource).raise_for_denial()


# ─── Role restriction ────────────────────────────────────


def check_role(identity: Optional[IdentityLike], allowed_roles: Iterable[str]) -> Decision:
    """Allow iff the caller's role is one of allowed_roles.

    A caller without a resolved role is always denied.
    """
    role = getattr(identity, "role", None) if identity is not None else None
    if role is not None and role in set(allowed_roles):
        return ALLOW
    return deny(f"User role {role or 'none'} is not authorized to access this route")
