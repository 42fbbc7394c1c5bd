# petqr/models/location.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterator

from petqr.models.pet import MalformedRecordError, _optional_str
from petqr.utils.datetime_utils import DateTimeUtils


def _coordinate(data: Dict[str, Any], key: str, limit: float) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedRecordError(f"'{key}' must be a number")
    if not -limit <= value <= limit:
        raise MalformedRecordError(f"'{key}' is out of range: {value}")
    return float(value)


@dataclass
class LocationSample:
    """
    A single finder position. Coordinates stay None until the device
    reports them; city/country stay None until reverse geocoding resolves.
    """
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    country: Optional[str] = None
    timestamp: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def unresolved(cls) -> "LocationSample":
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationSample":
        """Build a sample from a stored row; bad types raise MalformedRecordError."""
        if not isinstance(data, dict):
            raise MalformedRecordError("location row must be a mapping")

        timestamp = data.get("timestamp")
        try:
            timestamp = DateTimeUtils.coerce_datetime(timestamp, "timestamp") if timestamp else DateTimeUtils.now()
        except ValueError as e:
            raise MalformedRecordError(str(e))

        return cls(
            latitude=_coordinate(data, "latitude", 90),
            longitude=_coordinate(data, "longitude", 180),
            city=_optional_str(data, "city"),
            country=_optional_str(data, "country"),
            timestamp=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({
            "latitude": self.latitude,
            "longitude": self.longitude,
            "city": self.city,
            "country": self.country,
            "timestamp": self.timestamp,
        })

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def maps_url(self) -> Optional[str]:
        if not self.has_coordinates:
            return None
        return f"https://www.google.com/maps?q={self.latitude},{self.longitude}"


@dataclass
class LocationHistory:
    """Append-only, ordered sequence of samples for one pet."""
    locations: List[LocationSample] = field(default_factory=list)

    def append(self, sample: LocationSample) -> None:
        self.locations.append(sample)

    @property
    def latest(self) -> Optional[LocationSample]:
        return self.locations[-1] if self.locations else None

    def __len__(self) -> int:
        return len(self.locations)

    def __iter__(self) -> Iterator[LocationSample]:
        return iter(self.locations)
