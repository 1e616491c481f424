"""
Identity Service

Thin wrapper over the Firebase Auth admin API.
"""
import logging
from typing import Iterator, Optional, Tuple

from firebase_admin import auth

from salesdash.database import init_firebase

logger = logging.getLogger(__name__)


class IdentityService:
    """Service for interacting with Firebase Authentication"""

    def verify_id_token(self, token: str) -> Optional[dict]:
        """
        Verify a Firebase ID token

        Args:
            token: ID token sent by the client

        Returns:
            Decoded claims or None if the token is invalid
        """
        init_firebase()
        try:
            return auth.verify_id_token(token)
        except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError,
                auth.RevokedIdTokenError, auth.CertificateFetchError) as exc:
            logger.info("Rejected ID token: %s", exc)
            return None

    def get_or_create_user(self, email: str) -> Tuple[str, bool]:
        """
        Fetch the account for ``email``, creating it when missing

        Returns:
            Tuple of (uid, is_new_user)
        """
        init_firebase()
        try:
            return auth.get_user_by_email(email).uid, False
        except auth.UserNotFoundError:
            user = auth.create_user(email=email, email_verified=False)
            logger.info("Created identity account %s for %s", user.uid, email)
            return user.uid, True

    def set_role_claim(self, uid: str, role: str) -> None:
        init_firebase()
        user = auth.get_user(uid)
        claims = dict(user.custom_claims or {})
        claims["role"] = role
        auth.set_custom_user_claims(uid, claims)

    def password_reset_link(self, email: str) -> str:
        init_firebase()
        return auth.generate_password_reset_link(email)

    def iter_users(self) -> Iterator[Tuple[str, str]]:
        """Yield (uid, email) for every account."""
        init_firebase()
        for user in auth.list_users().iterate_all():
            yield user.uid, (user.email or "").lower()


# Singleton
identity_service = IdentityService()
