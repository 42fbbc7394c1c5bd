# petqr/api/auth/schemas.py
from marshmallow import Schema, fields


class LoginSchema(Schema):
    """Firebase ID token obtained by the client SDK after sign-in."""
    id_token = fields.Str(
        required=True,
        metadata={"description": "Firebase Authentication ID token"}
    )


class LogoutRequestSchema(Schema):
    access_token = fields.Str(required=True)
    refresh_token = fields.Str(required=True)
