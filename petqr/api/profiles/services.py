# petqr/api/profiles/services.py
import logging
from typing import Optional, List
from firebase_admin import firestore

from petqr.models.pet import MalformedRecordError
from petqr.models.profile import UserProfile
from petqr.utils.datetime_utils import DateTimeUtils


class ProfileService:
    """
    Reads and writes the Firestore 'profiles' collection.
    Profiles mirror Firebase Auth users; the only mutation is the admin flag.
    """

    def __init__(self, db=None):
        self.db = db or firestore.client()
        self.profiles_ref = self.db.collection('profiles')

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        doc = self.profiles_ref.document(user_id).get()
        if not doc.exists:
            return None
        return UserProfile.from_dict(doc.to_dict())

    def is_admin(self, user_id: str) -> bool:
        try:
            profile = self.get_profile(user_id)
        except MalformedRecordError as e:
            logging.warning(f"Malformed profile for user {user_id}: {e}")
            return False
        return bool(profile and profile.is_admin)

    def list_profiles(self) -> List[UserProfile]:
        """All profiles, newest first. Malformed rows are skipped."""
        docs = self.profiles_ref.order_by('created_at', direction=firestore.Query.DESCENDING).stream()
        profiles = []
        for doc in docs:
            try:
                profiles.append(UserProfile.from_dict(doc.to_dict()))
            except MalformedRecordError as e:
                logging.warning(f"Skipping malformed profile row {doc.id}: {e}")
        return profiles

    def create_profile(self, user_id: str, email: str) -> UserProfile:
        """Mirror a freshly created auth identity. New profiles are never admins."""
        profile = UserProfile(user_id=user_id, email=email, is_admin=False, created_at=DateTimeUtils.now())
        self.profiles_ref.document(user_id).set(profile.to_dict())
        logging.info(f"Profile created for user {user_id}")
        return profile

    def toggle_admin(self, user_id: str) -> UserProfile:
        """
        Flip the admin flag and return the profile as stored afterwards,
        so callers always show the committed value.
        """
        current = self.get_profile(user_id)
        if current is None:
            raise FileNotFoundError(f"Profile '{user_id}' not found.")

        self.profiles_ref.document(user_id).update({'is_admin': not current.is_admin})
        committed = self.get_profile(user_id)
        if committed is None:
            raise RuntimeError("Profile disappeared while toggling the admin flag.")
        logging.info(f"Admin flag for user {user_id} set to {committed.is_admin}")
        return committed
