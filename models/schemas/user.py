from marshmallow import Schema, fields, pre_load, validates, validate

from models.schemas.common import FlexibleDate, UTCDateTime, validate_not_future, validate_password_strength


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserRegisterSchema(Schema):
    full_name = fields.String(required=True, data_key="fullName", validate=validate.Length(min=1, error="Full name is required"))
    date_of_birth = FlexibleDate(required=True, data_key="dateOfBirth")
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email format"})
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data

    @validates("date_of_birth")
    def validate_date_of_birth(self, value, **kwargs):
        validate_not_future(value)

    @validates("password")
    def validate_password(self, value, **kwargs):
        validate_password_strength(value)


class UserLoginSchema(Schema):
    email = fields.Email(required=True, error_messages={"invalid": "Invalid email format"})
    password = fields.String(required=True, validate=validate.Length(min=1, error="Password is required"))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(
        required=True,
        data_key="refreshToken",
        validate=validate.Length(min=1, error="Refresh token is required"),
    )


class UserIdParamSchema(Schema):
    user_id = fields.UUID(required=True, error_messages={"invalid_uuid": "Invalid user ID format"})


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    full_name = fields.String(data_key="fullName")
    date_of_birth = fields.Date(data_key="dateOfBirth")
    email = fields.String()
    role = fields.Method("get_role")
    is_active = fields.Boolean(data_key="isActive")
    created_at = UTCDateTime(data_key="createdAt")
    updated_at = UTCDateTime(data_key="updatedAt")

    def get_role(self, obj):
        role = getattr(obj, "role", None)
        return getattr(role, "value", role)
