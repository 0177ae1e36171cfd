"""
schemas/group_schema.py — Marshmallow schemas for group and member endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    duplicate names inside one create-group payload.
  - services/group_service.py:
      - GROUP_NOT_FOUND        (requires DB lookup)
      - DUPLICATE_MEMBER_NAME  (requires DB lookup when adding a member)

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
           See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates

from splitsettle.app.errors import ErrorCode


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


_member_name = fields.Str(
    validate=[
        validate.Length(
            min=1,
            max=50,
            error="Member name must be between 1 and 50 characters.",
        ),
        _validate_non_empty_after_trim,
    ],
)


class CreateGroupSchema(Schema):
    """
    POST /groups

    name     — non-empty after trim, max 100 chars.
    currency — optional 3-letter code; the app's CURRENCY setting otherwise.
    members  — optional initial member names, unique within the payload.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    currency = fields.Str(
        load_default=None,
        validate=validate.Regexp(
            r"^[A-Z]{3}$",
            error="currency must be a 3-letter uppercase code, e.g. 'INR'.",
        ),
    )

    members = fields.List(_member_name, load_default=list)

    @validates("members")
    def validate_unique_names(self, value: list[str], **kwargs) -> None:
        names = [name.strip() for name in value]
        if len(names) != len(set(names)):
            raise ValidationError(ErrorCode.DUPLICATE_MEMBER_NAME)


class AddMemberSchema(Schema):
    """
    POST /groups/:id/members

    Uniqueness inside the group is a DB concern (DUPLICATE_MEMBER_NAME, 409)
    checked in group_service.py.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=50,
                error="Member name must be between 1 and 50 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )
