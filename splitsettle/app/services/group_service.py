"""
services/group_service.py — Group and member business logic.

Members are plain named participants of one group. A member name is unique
within its group (DUPLICATE_MEMBER_NAME, 409).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from splitsettle.app.errors import AppError, ErrorCode
from splitsettle.app.models.group import Group
from splitsettle.app.models.member import Member

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def get_group_or_404(group_id: int, session: Session) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = session.get(Group, group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


def _serialize_member(member: Member) -> dict:
    return {
        "id": member.id,
        "name": member.name,
        "joined_at": member.joined_at.isoformat() if member.joined_at else None,
    }


def _build_group_dict(group: Group, members: list[Member]) -> dict:
    """Serialises a Group with its member list to a plain dict."""
    return {
        "id": group.id,
        "name": group.name,
        "currency": group.currency,
        "created_at": group.created_at.isoformat() if group.created_at else None,
        "members": [_serialize_member(m) for m in members],
    }


def _name_taken(group_id: int, name: str, session: Session) -> bool:
    existing = session.execute(
        select(Member.id).where(
            Member.group_id == group_id,
            Member.name == name,
        )
    ).scalar_one_or_none()
    return existing is not None


# ── Public service functions ───────────────────────────────────────────────

def create_group(
        name: str,
        currency: str,
        member_names: list[str],
        session: Session,
) -> dict:
    """
    Creates a new group, optionally with its initial members.

    Args:
        name:         Group name (validated by schema — non-empty, max 100 chars).
        currency:     Display currency code, e.g. "INR".
        member_names: Initial member names, already unique (schema-checked).

    Returns: dict with group details and initial member list.
    """
    group = Group(name=name.strip(), currency=currency)
    session.add(group)
    session.flush()  # populate group.id before creating members

    members = [Member(group_id=group.id, name=n.strip()) for n in member_names]
    session.add_all(members)
    session.flush()
    session.refresh(group)

    logger.info("Created group %s with %d members", group.id, len(members))
    return _build_group_dict(group, list(group.members))


def list_groups(session: Session) -> list[dict]:
    """
    Returns all groups ordered by creation.

    Returns lightweight group dicts (no member list) for list efficiency.
    Full member list is available via get_group().
    """
    stmt = select(Group).order_by(Group.created_at.asc(), Group.id.asc())
    groups = session.execute(stmt).scalars().all()

    return [
        {
            "id": g.id,
            "name": g.name,
            "currency": g.currency,
            "created_at": g.created_at.isoformat() if g.created_at else None,
        }
        for g in groups
    ]


def get_group(group_id: int, session: Session) -> dict:
    """Returns full group details including the current member list."""
    group = get_group_or_404(group_id, session)

    stmt = (
        select(Member)
        .where(Member.group_id == group_id)
        .order_by(Member.id.asc())
    )
    members = list(session.execute(stmt).scalars().all())

    return _build_group_dict(group, members)


def add_member(group_id: int, name: str, session: Session) -> dict:
    """
    Adds a named member to a group.

    Raises:
      AppError(GROUP_NOT_FOUND, 404)        — group does not exist
      AppError(DUPLICATE_MEMBER_NAME, 409)  — the name is already used in the group

    Returns: dict with the new member's details.
    """
    get_group_or_404(group_id, session)
    name = name.strip()

    if _name_taken(group_id, name, session):
        raise AppError(
            ErrorCode.DUPLICATE_MEMBER_NAME,
            f"A member named {name!r} already exists in group {group_id}.",
            409,
            field="name",
        )

    member = Member(group_id=group_id, name=name)
    session.add(member)
    session.flush()
    session.refresh(member)

    logger.info("Added member %s (%r) to group %s", member.id, name, group_id)
    return {"group_id": group_id, **_serialize_member(member)}
