from marshmallow import Schema, fields, validate, EXCLUDE


class CreateAccessTokenRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class CreateAccessTokenResponseSchema(Schema):
    access_token = fields.String(data_key="accessToken")
