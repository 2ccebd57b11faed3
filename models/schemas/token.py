from marshmallow import EXCLUDE, Schema, fields, pre_load

PASSWORD_GRANT_TYPE = "password"
REFRESH_GRANT_TYPE = "refresh_token"


def _strip(data):
    if isinstance(data, dict):
        return {k: v.strip() if isinstance(v, str) and k != "password" else v for k, v in data.items()}
    return data


class PasswordGrantSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    grant_type = fields.String(required=True)
    username = fields.String(required=True, validate=lambda s: len(s) > 0)
    password = fields.String(required=True, load_only=True, validate=lambda s: len(s) > 0)
    scope = fields.String(load_default=None, allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = _strip(data)
        if isinstance(data, dict) and isinstance(data.get("username"), str):
            # accounts are stored with lowercase usernames
            data["username"] = data["username"].lower()
        return data


class RefreshGrantSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    grant_type = fields.String(required=True)
    refresh_token = fields.String(required=True, validate=lambda s: len(s) > 0)
    scope = fields.String(load_default=None, allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        return _strip(data)
