"""
Access control for dashboard pages.

``decide_access`` is the pure permission rule. ``AccessController`` drives
the live decision for one page view from three observable inputs: identity
state, the settings document and the signed-in user's profile.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from salesdash.config.permissions import (
    FULL_ACCESS_ROLES,
    LOGIN_PATH,
    PASSWORD_CHANGE_PATH,
    PROTECTED_ROOT,
    is_protected,
    resolve_role,
)
from salesdash.schemas.settings import AppSettings
from salesdash.services.observable import Combined, Observable, Subscription, combine_latest

logger = logging.getLogger(__name__)


class AccessState(str, enum.Enum):
    CHECKING = "checking"
    GRANTED = "granted"
    DENIED_REDIRECTING = "denied-redirecting"
    UNAUTHENTICATED_REDIRECTING = "unauthenticated-redirecting"
    PASSWORD_CHANGE_REDIRECTING = "password-change-redirecting"


@dataclass(frozen=True)
class AccessDecision:
    state: AccessState
    path: str
    role: Optional[str] = None
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.state == AccessState.GRANTED

    def as_dict(self) -> dict:
        return {
            "state": self.state.value,
            "path": self.path,
            "role": self.role,
            "allowed": self.allowed,
            "redirectTo": self.redirect_to,
        }


def matching_page(path: str, permissions: dict) -> Optional[str]:
    """Longest configured page prefix that matches ``path``.

    The root entry only ever matches the root itself.
    """
    candidates = [
        page for page in permissions
        if path == page or (page != PROTECTED_ROOT and path.startswith(page.rstrip("/") + "/"))
    ]
    if not candidates:
        return None
    return max(candidates, key=len)


def decide_access(role: str, path: str, app_settings: AppSettings) -> bool:
    if role in FULL_ACCESS_ROLES:
        return True

    permissions = app_settings.permissions
    if path == PROTECTED_ROOT:
        return role in permissions.get(PROTECTED_ROOT, [])

    page = matching_page(path, permissions)
    if page is None:
        return False
    if page in app_settings.inactive_pages:
        return False
    return role in permissions.get(page, [])


@dataclass(frozen=True)
class UserProfile:
    uid: str
    role: str
    email: str = ""
    require_password_change: bool = False

    @classmethod
    def from_document(cls, uid: str, data: Optional[dict], claim_role: Optional[str] = None) -> "UserProfile":
        data = data or {}
        return cls(
            uid=uid,
            role=resolve_role(data.get("role"), claim_role),
            email=data.get("email") or "",
            require_password_change=bool(data.get("requirePasswordChange")),
        )


def evaluate(path: str, profile: UserProfile, app_settings: AppSettings) -> AccessDecision:
    """Decision for a signed-in user on ``path``."""
    if profile.require_password_change and path != PASSWORD_CHANGE_PATH:
        return AccessDecision(AccessState.PASSWORD_CHANGE_REDIRECTING, path, profile.role, PASSWORD_CHANGE_PATH)
    if not is_protected(path):
        return AccessDecision(AccessState.GRANTED, path, profile.role)
    if decide_access(profile.role, path, app_settings):
        return AccessDecision(AccessState.GRANTED, path, profile.role)
    return AccessDecision(AccessState.DENIED_REDIRECTING, path, profile.role, PROTECTED_ROOT)


class AccessController:
    """
    Live access decision for one page view.

    ``auth_feed`` publishes the signed-in uid (``None`` when signed out);
    ``profile_feed_factory(uid)`` returns an observable of that user's
    ``UserProfile`` which the controller closes when the user changes or on
    ``close()``.
    """

    def __init__(
        self,
        path: str,
        auth_feed: Observable,
        settings_feed: Observable,
        profile_feed_factory: Callable[[str], Observable],
    ):
        self.path = path
        self.auth_feed = auth_feed
        self.settings_feed = settings_feed
        self.profile_feed_factory = profile_feed_factory

        self.decision = AccessDecision(AccessState.CHECKING, path)
        self.is_loading = True
        self._listeners: List[Callable[[AccessDecision], None]] = []
        self._subscriptions: List[Subscription] = []
        self._profile_feed: Optional[Observable] = None
        self._combined: Optional[Combined] = None
        self._combined_sub: Optional[Subscription] = None
        self._closed = False

    @property
    def state(self) -> AccessState:
        return self.decision.state

    def on_change(self, listener: Callable[[AccessDecision], None]) -> None:
        self._listeners.append(listener)

    def start(self) -> "AccessController":
        self._subscriptions.append(self.auth_feed.subscribe(self._on_auth))
        # keeps the settings watch warm while the user lookup is pending
        self._subscriptions.append(self.settings_feed.subscribe(lambda _settings: None))
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._drop_profile()
        for subscription in self._subscriptions:
            subscription.release()
        self._subscriptions = []

    def _on_auth(self, uid: Optional[str]) -> None:
        if self._closed:
            return
        self._drop_profile()
        if uid is None:
            self.is_loading = False
            if is_protected(self.path):
                self._transition(AccessDecision(AccessState.UNAUTHENTICATED_REDIRECTING, self.path, None, LOGIN_PATH))
            return

        self._profile_feed = self.profile_feed_factory(uid)
        self._combined = combine_latest(self.settings_feed, self._profile_feed)
        self._combined_sub = self._combined.subscribe(self._recompute)

    def _recompute(self, values) -> None:
        if self._closed:
            return
        app_settings, profile = values
        self.is_loading = False
        self._transition(evaluate(self.path, profile, app_settings))

    def _transition(self, decision: AccessDecision) -> None:
        if decision == self.decision:
            return
        logger.debug("Access %s -> %s for %s (role=%s)", self.decision.state.value, decision.state.value,
                     self.path, decision.role)
        self.decision = decision
        for listener in list(self._listeners):
            listener(decision)

    def _drop_profile(self) -> None:
        if self._combined_sub is not None:
            self._combined_sub.release()
            self._combined_sub = None
        if self._combined is not None:
            self._combined.close()
            self._combined = None
        if self._profile_feed is not None:
            close = getattr(self._profile_feed, "close", None)
            if close is not None:
                close()
            self._profile_feed = None
