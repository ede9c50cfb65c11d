"""
Session Service Module

This module tracks who is signed in. Two holders share one surface:
BackendSessionHolder follows the hosted backend's auth stream, and
ProviderSessionHolder follows a delegated login provider. Both reduce the
provider's user record to a Profile and resolve it with resolve_identity().
"""

import copy
from typing import Any, Dict, Optional

from data.models import AuthSession, Identity, Profile
from data.protocols import AuthBackend, IdentityProvider
from utils.exceptions import RemoteServiceError
from utils.helpers import first_non_empty, safe_get
from utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Identity resolution
# =============================================================================

def profile_from_backend_user(user: Optional[Dict[str, Any]]) -> Optional[Profile]:
    """
    Normalize a user record from the backend auth service.

    Args:
        user: The user object, with provider details under user_metadata.

    Returns:
        Optional[Profile]: The normalized profile, or None for no user.
    """
    if not user:
        return None
    meta = user.get("user_metadata") or {}
    return Profile(
        handle=first_non_empty(meta.get("user_name"), meta.get("preferred_username")) or None,
        wallet_address=first_non_empty(meta.get("wallet_address")) or None,
        display_name=first_non_empty(meta.get("full_name"), meta.get("name")) or None,
        avatar_url=first_non_empty(meta.get("avatar_url"), meta.get("picture")) or None,
    )


def profile_from_provider_user(user: Optional[Dict[str, Any]]) -> Optional[Profile]:
    """
    Normalize a user record from a delegated social/wallet login provider.

    Args:
        user: The provider's user object with optional twitter and wallet sections.

    Returns:
        Optional[Profile]: The normalized profile, or None for no user.
    """
    if not user:
        return None
    return Profile(
        handle=first_non_empty(safe_get(user, "twitter", "username")) or None,
        wallet_address=first_non_empty(safe_get(user, "wallet", "address")) or None,
        avatar_url=first_non_empty(
            safe_get(user, "twitter", "profilePictureUrl"),
            safe_get(user, "twitter", "profile_picture_url"),
        ) or None,
    )


def resolve_identity(profile: Optional[Profile]) -> Optional[Identity]:
    """
    Resolve the caller's identity from a normalized profile.

    The name is the first non-empty of handle, wallet address and display
    name; the image is the avatar URL. Both fall back to the empty string.

    Args:
        profile: The normalized profile, or None when nobody is signed in.

    Returns:
        Optional[Identity]: The identity, or None when there is no profile.
    """
    if profile is None:
        return None

    candidates = (profile.handle, profile.wallet_address, profile.display_name)
    name = first_non_empty(*candidates)
    aliases = tuple(
        dict.fromkeys(c.strip() for c in candidates if c and c.strip() and c.strip() != name)
    )
    return Identity(name=name, image=first_non_empty(profile.avatar_url), aliases=aliases)


# =============================================================================
# Variant A: hosted backend auth
# =============================================================================

class BackendSessionHolder:
    """Session holder fed by the hosted backend's auth change stream."""

    def __init__(self, auth: AuthBackend):
        self.auth = auth
        self.identity: Optional[Identity] = None
        self._subscription = None

    def start(self) -> Optional[Identity]:
        """Look the session up once, then follow the change stream."""
        try:
            session = self.auth.get_session()
        except RemoteServiceError as e:
            logger.warning(f"Could not read session: {e}")
            session = None

        self._apply(session)

        if self._subscription is None:
            self._subscription = self.auth.on_auth_state_change(self._on_auth_change)
        return self.identity

    def close(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()

    def _on_auth_change(self, event: str, session: Optional[AuthSession]) -> None:
        logger.debug(f"Session holder received {event}")
        self._apply(session)

    def _apply(self, session: Optional[AuthSession]) -> None:
        self.identity = resolve_identity(
            profile_from_backend_user(session.user if session else None)
        )

    def sign_in(self, provider: Optional[str] = None) -> Optional[str]:
        return self.auth.sign_in_with_oauth(provider)

    def complete_sign_in(self, callback_url: str) -> Optional[Identity]:
        """
        Finish an OAuth redirect.

        The new identity arrives through the change stream; it is also
        applied here so callers that have not started the holder see it.

        Returns:
            Optional[Identity]: The identity after the attempt.
        """
        try:
            session = self.auth.set_session_from_url(callback_url)
        except RemoteServiceError as e:
            logger.error(f"Error completing sign-in: {e}")
            return self.identity
        self._apply(session)
        return self.identity

    def sign_out(self) -> None:
        self.identity = None
        try:
            self.auth.sign_out()
        except RemoteServiceError as e:
            logger.error(f"Error signing out: {e}")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


# =============================================================================
# Variant B: delegated identity provider
# =============================================================================

_UNSET = object()


class ProviderSessionHolder:
    """
    Session holder fed by an external provider exposing ready/user/login/logout.

    The provider has no change stream, so reading identity compares the
    provider's ready flag and user with the last snapshot and recomputes
    when either changed.
    """

    def __init__(self, provider: IdentityProvider):
        self.provider = provider
        self._identity: Optional[Identity] = None
        self._snapshot: Any = _UNSET

    @property
    def identity(self) -> Optional[Identity]:
        return self.refresh()

    def start(self) -> Optional[Identity]:
        return self.refresh()

    def _current_snapshot(self):
        return (bool(self.provider.ready), copy.deepcopy(self.provider.user))

    def refresh(self) -> Optional[Identity]:
        """Recompute the identity if the provider's ready flag or user changed."""
        snapshot = self._current_snapshot()
        if snapshot == self._snapshot:
            return self._identity

        self._snapshot = snapshot
        ready, user = snapshot
        self._identity = resolve_identity(profile_from_provider_user(user)) if ready else None
        logger.debug(f"Provider identity recomputed: {self._identity.name if self._identity else 'absent'}")
        return self._identity

    def close(self) -> None:
        self._snapshot = _UNSET

    def sign_in(self, provider: Optional[str] = None) -> Optional[str]:
        self.provider.login()
        return None

    def sign_out(self) -> None:
        """Log out of the provider; the identity stays absent until the provider's state changes."""
        self._identity = None
        try:
            self.provider.logout()
        except Exception as e:
            logger.error(f"Error signing out of provider: {e}")
        self._snapshot = self._current_snapshot()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
