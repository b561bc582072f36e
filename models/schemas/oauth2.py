from marshmallow import Schema, fields, post_load, validates, ValidationError, EXCLUDE

from utils.oauth2_types import AuthorizationRequest

# Bump when the cookie payload layout changes; older cookies are then rejected
AUTH_REQUEST_VERSION = 1


class AuthorizationRequestSchema(Schema):
    """Explicit layout of the oauth2_auth_request cookie payload."""

    class Meta:
        unknown = EXCLUDE

    v = fields.Integer(required=True, dump_default=AUTH_REQUEST_VERSION)
    registration_id = fields.String(required=True)
    authorization_uri = fields.String(required=True)
    client_id = fields.String(required=True)
    redirect_uri = fields.String(required=True)
    scopes = fields.List(fields.String(), load_default=list)
    state = fields.String(required=True)
    nonce = fields.String(allow_none=True, load_default=None)

    @validates("v")
    def validate_version(self, value, **kwargs):
        if value != AUTH_REQUEST_VERSION:
            raise ValidationError(f"Unsupported flow state version {value}")

    @validates("state")
    def validate_state(self, value, **kwargs):
        if not value:
            raise ValidationError("state must not be empty")

    @post_load
    def make_request(self, data, **kwargs):
        data.pop("v", None)
        data["scopes"] = tuple(data.get("scopes") or ())
        return AuthorizationRequest(**data)
