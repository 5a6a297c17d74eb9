from sqlalchemy import BigInteger, Enum, Integer

# Portable ENUM types. Non-native so the same metadata works on Postgres and SQLite.

lost_status_enum = Enum("lost", "reclaimed", name="lost_status_enum", native_enum=False, length=16)
found_status_enum = Enum("found", "returned", name="found_status_enum", native_enum=False, length=16)
match_status_enum = Enum("pending", "accepted", "rejected", name="match_status_enum", native_enum=False, length=16)
notification_type_enum = Enum(
    "match_created",
    "match_verified",
    "match_rejected",
    name="notification_type_enum",
    native_enum=False,
    length=32,
)

# BIGINT ids on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY.
id_type = BigInteger().with_variant(Integer, "sqlite")

LOST_STATUSES = ("lost", "reclaimed")
FOUND_STATUSES = ("found", "returned")
MATCH_STATUSES = ("pending", "accepted", "rejected")
TERMINAL_MATCH_STATUSES = ("accepted", "rejected")
ITEM_KINDS = ("lost", "found")
