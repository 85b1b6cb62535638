import json
from datetime import date, datetime, timezone
from enum import Enum


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that writes dates and datetimes as ISO strings"""

    def default(self, obj):
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, as stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
