import uuid
from datetime import datetime, timezone


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_uuid():
    return uuid.uuid4().hex
