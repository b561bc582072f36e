from marshmallow import Schema, fields, pre_load, validates, ValidationError, EXCLUDE


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    nickname = fields.String(allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = {**data, "email": _norm_email(data["email"])}
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class UserOutSchema(Schema):
    id = fields.Integer()
    email = fields.String()
    nickname = fields.String(allow_none=True)
    created_at = fields.DateTime()


class PrincipalOutSchema(Schema):
    id = fields.Integer()
    email = fields.String()
    roles = fields.List(fields.String())
