from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, the way every timestamp column is stored
    return datetime.now(timezone.utc).replace(tzinfo=None)
