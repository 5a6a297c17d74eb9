from marshmallow import Schema, fields


class NotificationSchema(Schema):
    id = fields.Int(dump_only=True)
    user_id = fields.Int(data_key="userId")
    type = fields.Str()
    title = fields.Str(allow_none=True)
    message = fields.Str()
    payload = fields.Dict(allow_none=True)
    read = fields.Bool(attribute="is_read")
    read_at = fields.DateTime(allow_none=True, data_key="readAt")
    created_at = fields.DateTime(data_key="createdAt")
