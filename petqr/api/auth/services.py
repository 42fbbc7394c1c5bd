# petqr/api/auth/services.py
import secrets
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from firebase_admin import firestore, auth as firebase_auth

from petqr.api.profiles.services import ProfileService
from petqr.core.session import AuthEvent, AuthEventType
from petqr.models.profile import UserProfile
from petqr.utils.datetime_utils import DateTimeUtils

AuthListener = Callable[[AuthEvent], None]


class AuthService:
    """
    Thin wrapper over Firebase Authentication.

    Exposes identity lookup, sign-out, privileged user creation and an
    event stream of session changes (`subscribe`/`publish`).
    """

    def __init__(self, profile_service: ProfileService, db=None):
        self.db = db or firestore.client()
        self.revoked_tokens_ref = self.db.collection('revoked_tokens')
        self.profile_service = profile_service
        self._listeners: List[AuthListener] = []

    # --- session event stream ---
    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logging.error(f"Auth listener failed on {event.type.value}: {e}", exc_info=True)

    # --- identity ---
    def verify_id_token(self, id_token: str) -> dict:
        """Validate a Firebase ID token and return its claims."""
        return firebase_auth.verify_id_token(id_token)

    def sign_in(self, id_token: str) -> Tuple[str, Optional[UserProfile]]:
        """
        Resolve the identity behind a Firebase ID token.
        Returns the uid and its profile (None if the user has no profile row).
        """
        claims = self.verify_id_token(id_token)
        user_id = claims.get('uid') or claims.get('sub')
        if not user_id:
            raise ValueError("Firebase token carries no uid.")

        profile = self.profile_service.get_profile(user_id)
        self.publish(AuthEvent(
            type=AuthEventType.SIGNED_IN,
            user_id=user_id,
            email=profile.email if profile else claims.get('email'),
            is_admin=bool(profile and profile.is_admin),
        ))
        logging.info(f"User {user_id} signed in")
        return user_id, profile

    # --- blocklist ---
    def add_token_to_blocklist(self, jti: str, expires: datetime):
        """Store a revoked token's jti together with its expiry."""
        try:
            token_data = DateTimeUtils.for_firestore({
                'revoked_at': DateTimeUtils.now(),
                'expires_at': expires
            })
            self.revoked_tokens_ref.document(jti).set(token_data)
        except Exception as e:
            logging.error(f"Failed to blocklist token (jti: {jti}): {e}")
            raise

    def is_token_revoked(self, jwt_payload: dict) -> bool:
        jti = jwt_payload['jti']
        return self.revoked_tokens_ref.document(jti).get().exists

    def sign_out(self, user_id: str, access_jti: str, access_exp: int, refresh_jti: str, refresh_exp: int):
        """Blocklist both tokens, revoke Firebase refresh tokens and drop the session."""
        self.add_token_to_blocklist(access_jti, datetime.fromtimestamp(access_exp, tz=timezone.utc))
        self.add_token_to_blocklist(refresh_jti, datetime.fromtimestamp(refresh_exp, tz=timezone.utc))
        try:
            firebase_auth.revoke_refresh_tokens(user_id)
        except firebase_auth.UserNotFoundError:
            logging.warning(f"Firebase user {user_id} no longer exists; skipping token revocation.")
        self.publish(AuthEvent(type=AuthEventType.SIGNED_OUT, user_id=user_id))
        logging.info(f"User {user_id} signed out. JTI: {access_jti[:8]}..., {refresh_jti[:8]}...")

    # --- privileged user creation ---
    def create_user(self, email: str) -> UserProfile:
        """
        Create a Firebase Auth user with a random password (the user resets it
        by email) and mirror it in 'profiles'.
        """
        try:
            user_record = firebase_auth.create_user(
                email=email,
                password=secrets.token_urlsafe(12),
                email_verified=True,
            )
        except firebase_auth.EmailAlreadyExistsError:
            raise ValueError(f"A user with email {email} already exists.")
        return self.profile_service.create_profile(user_record.uid, email)

    def notify_profile_updated(self, profile: UserProfile) -> None:
        self.publish(AuthEvent(
            type=AuthEventType.PROFILE_UPDATED,
            user_id=profile.user_id,
            email=profile.email,
            is_admin=profile.is_admin,
        ))
