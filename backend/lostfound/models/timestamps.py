from datetime import datetime, timezone


def utcnow() -> datetime:
    # Python-side default: values are populated on the instance at flush time.
    return datetime.now(timezone.utc)
