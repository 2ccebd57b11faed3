from marshmallow import EXCLUDE, Schema, fields, pre_load, validates, ValidationError


def _norm_username(v):
    return v.strip().lower() if isinstance(v, str) else v


def _norm_scope(v):
    return " ".join(v.split()) if isinstance(v, str) else v


class UserCreateSchema(Schema):
    username = fields.String(required=True, validate=lambda s: 0 < len(s) <= 255)
    password = fields.String(required=True, load_only=True)
    scope = fields.String(load_default="")
    active = fields.Boolean(load_default=True)
    f_name = fields.String(allow_none=True)
    l_name = fields.String(allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "username" in data:
                data["username"] = _norm_username(data["username"])
            if "scope" in data:
                data["scope"] = _norm_scope(data["scope"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class UserUpdateSchema(Schema):
    password = fields.String(load_only=True)
    scope = fields.String()
    active = fields.Boolean()
    f_name = fields.String(allow_none=True)
    l_name = fields.String(allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "scope" in data:
            data = dict(data)
            data["scope"] = _norm_scope(data["scope"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class UserSelfUpdateSchema(Schema):
    """Fields an account may change on itself; username, scope and active are dropped."""
    class Meta:
        unknown = EXCLUDE

    password = fields.String(load_only=True)
    f_name = fields.String(allow_none=True)
    l_name = fields.String(allow_none=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 8:
            raise ValidationError("Password must be at least 8 characters long.")


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    active = fields.Boolean()
    scope = fields.String()
    f_name = fields.String(allow_none=True)
    l_name = fields.String(allow_none=True)
