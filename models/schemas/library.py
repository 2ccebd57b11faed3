from marshmallow import Schema, fields, validates, ValidationError


def _validate_scope(value):
    if not value or any(ch.isspace() for ch in value) or ":" in value:
        raise ValidationError("Scope must be non-empty and contain no spaces or colons.")


class LibraryCreateSchema(Schema):
    name = fields.String(required=True, validate=lambda s: len(s.strip()) > 0 and len(s) <= 255)
    scope = fields.String(required=True)
    active = fields.Boolean(load_default=True)
    notes = fields.String(allow_none=True)

    @validates("scope")
    def validate_scope(self, value, **kwargs):
        _validate_scope(value)


class LibraryUpdateSchema(Schema):
    name = fields.String(validate=lambda s: len(s.strip()) > 0 and len(s) <= 255)
    active = fields.Boolean()
    notes = fields.String(allow_none=True)


class LibraryOutSchema(Schema):
    id = fields.String()
    name = fields.String()
    scope = fields.String()
    active = fields.Boolean()
    notes = fields.String(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
