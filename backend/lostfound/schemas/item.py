from marshmallow import EXCLUDE, Schema, fields, validate


class LostItemSchema(Schema):
    id = fields.Int(dump_only=True)
    owner_id = fields.Int(dump_only=True, data_key="ownerId")
    item_name = fields.Str(required=True, data_key="itemName", validate=validate.Length(min=1, max=200))
    description = fields.Str(allow_none=True, load_default=None)
    category = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    # Accepted on create, never dumped
    secret_identifier = fields.Str(
        required=True,
        load_only=True,
        data_key="secretIdentifier",
        validate=validate.Length(min=1, max=255),
    )
    lost_date = fields.Date(allow_none=True, load_default=None, data_key="lostDate")
    location = fields.Str(allow_none=True, load_default=None)
    status = fields.Str(dump_only=True)
    created_at = fields.DateTime(dump_only=True, data_key="createdAt")
    updated_at = fields.DateTime(dump_only=True, data_key="updatedAt")

    class Meta:
        unknown = EXCLUDE


class FoundItemSchema(Schema):
    id = fields.Int(dump_only=True)
    finder_id = fields.Int(dump_only=True, allow_none=True, data_key="finderId")
    item_name = fields.Str(required=True, data_key="itemName", validate=validate.Length(min=1, max=200))
    description = fields.Str(allow_none=True, load_default=None)
    category = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    found_date = fields.Date(allow_none=True, load_default=None, data_key="foundDate")
    location = fields.Str(allow_none=True, load_default=None)
    status = fields.Str(dump_only=True)
    created_at = fields.DateTime(dump_only=True, data_key="createdAt")
    updated_at = fields.DateTime(dump_only=True, data_key="updatedAt")

    class Meta:
        unknown = EXCLUDE
