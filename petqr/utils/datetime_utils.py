# petqr/utils/datetime_utils.py
"""
Centralized date/time helpers used across the project.

Goals:
1. Every timestamp the backend produces is UTC and timezone-aware
2. Values written to / read from Firestore round-trip consistently
3. ISO strings are parsed and produced in a single place
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """Central utility class for date/time handling."""

    @staticmethod
    def now() -> datetime:
        """Current time as a UTC timezone-aware datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        Parse an ISO formatted string into a UTC datetime.

        Supported formats:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00-03:00
        - 2024-01-15T10:30:00.123456Z
        - 2024-01-15T10:30:00 (assumed UTC)
        """
        try:
            if not iso_string:
                raise ValueError("cannot parse an empty string")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime parse failed: {iso_string} - {e}")
            raise ValueError(f"Invalid ISO datetime: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime -> ISO string with a 'Z' suffix."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace('+00:00', 'Z')

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Convert date/time values before a Firestore write.

        Rules:
        - date -> datetime (00:00:00 UTC)
        - naive datetime -> UTC-aware datetime
        - dict/list are converted recursively
        """
        if isinstance(obj, date) and not isinstance(obj, datetime):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)
        elif isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(obj: Any) -> Any:
        """
        Normalize values read back from Firestore.

        Firestore returns DatetimeWithNanoseconds (a datetime subclass),
        which is normalized to plain UTC. dict/list are converted recursively.
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.from_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.from_firestore(item) for item in obj]
        return obj

    @staticmethod
    def coerce_datetime(value: Any, field_name: str = "datetime") -> datetime:
        """
        Accept a datetime (Firestore timestamp) or an ISO string and
        return a UTC-aware datetime.

        Raises:
            ValueError: the value is neither
        """
        if isinstance(value, datetime):
            return DateTimeUtils.from_firestore(value)
        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)
        raise ValueError(f"{field_name} must be a datetime or ISO string, got {type(value).__name__}")
