# petqr/api/profiles/schemas.py
from marshmallow import Schema, fields, validate


class UserProfileResponseSchema(Schema):
    """Row of the admin console's user table."""
    user_id = fields.Str(dump_only=True)
    email = fields.Str()
    is_admin = fields.Bool()
    created_at = fields.DateTime()


class CreateUserSchema(Schema):
    """POST /api/admin/users"""
    email = fields.Email(required=True, validate=validate.Length(max=254))
