# petqr/models/profile.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any

from petqr.models.pet import MalformedRecordError
from petqr.utils.datetime_utils import DateTimeUtils


@dataclass
class UserProfile:
    """
    Document structure of the Firestore 'profiles' collection.
    `user_id` mirrors the Firebase Auth uid; the admin flag is the only mutable field.
    """
    user_id: str
    email: str
    is_admin: bool = False
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        user_id = data.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            raise MalformedRecordError("'user_id' is required")
        email = data.get("email") or ""
        if not isinstance(email, str):
            raise MalformedRecordError("'email' must be a string")
        is_admin = data.get("is_admin", False)
        if not isinstance(is_admin, bool):
            raise MalformedRecordError("'is_admin' must be a boolean")
        created_at = data.get("created_at")
        try:
            created_at = DateTimeUtils.coerce_datetime(created_at, "created_at") if created_at is not None else DateTimeUtils.now()
        except ValueError as e:
            raise MalformedRecordError(str(e))
        return cls(user_id=user_id, email=email, is_admin=is_admin, created_at=created_at)

    def to_dict(self) -> Dict[str, Any]:
        return DateTimeUtils.for_firestore({
            "user_id": self.user_id,
            "email": self.email,
            "is_admin": self.is_admin,
            "created_at": self.created_at,
        })
