"""
routes/groups.py — Group and member route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.

Endpoints (base url_prefix=/api/v1/groups):
  POST   /groups                 → 201  create group (optionally with members)
  GET    /groups                 → 200  list groups
  GET    /groups/:id             → 200  get group + members
  POST   /groups/:id/members     → 201  add member
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from splitsettle.app.extensions import db
from splitsettle.app.schemas.group_schema import AddMemberSchema, CreateGroupSchema
from splitsettle.app.services import group_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["POST"], strict_slashes=False)
def create_group():
    """POST /groups — Create a new group, with optional initial member names."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(
        name=data["name"],
        currency=data["currency"] or current_app.config["CURRENCY"],
        member_names=data["members"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/", methods=["GET"], strict_slashes=False)
def list_groups():
    """GET /groups — List all groups."""
    result = group_service.list_groups(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["GET"])
def get_group(group_id: int):
    """GET /groups/:id — Get group details with member list."""
    result = group_service.get_group(group_id=group_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members", methods=["POST"])
def add_member(group_id: int):
    """POST /groups/:id/members — Add a named member to the group."""
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    result = group_service.add_member(
        group_id=group_id,
        name=data["name"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201
