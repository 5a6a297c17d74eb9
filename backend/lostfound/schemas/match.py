from marshmallow import EXCLUDE, Schema, fields, validate


class MatchSchema(Schema):
    id = fields.Int(dump_only=True)
    lost_item_id = fields.Int(data_key="lostItemId")
    found_item_id = fields.Int(data_key="foundItemId")
    loser_id = fields.Int(data_key="loserId")
    finder_id = fields.Int(allow_none=True, data_key="finderId")
    status = fields.Str()
    notes = fields.Str(allow_none=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")


class VerifyMatchSchema(Schema):
    # Emptiness is checked by MatchService.verify
    secret_identifier = fields.Str(load_default="", allow_none=True, data_key="secretIdentifier")

    class Meta:
        unknown = EXCLUDE


class RejectMatchSchema(Schema):
    reason = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=500))

    class Meta:
        unknown = EXCLUDE
