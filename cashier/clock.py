from datetime import datetime
from zoneinfo import ZoneInfo

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


class Clock:
    """Wall clock pinned to the store's timezone; every persisted timestamp goes through it."""

    def __init__(self, timezone="Asia/Jakarta"):
        self.tz = ZoneInfo(timezone)

    def now(self):
        return datetime.now(self.tz)

    def timestamp(self):
        return self.now().strftime(TIMESTAMP_FORMAT)

    def today(self):
        return self.now().strftime(DATE_FORMAT)
