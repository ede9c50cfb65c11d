"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for the Remote Data Service.
These protocols enable dependency injection, so the feed controller and the
session holders can run against the hosted backend or an in-memory double.

Protocols defined:
- PostStore: Row operations on the posts table
- AuthBackend: Session lookup, change stream, sign-in and sign-out
- IdentityProvider: An external login provider exposing ready/user/login/logout
"""

from typing import Any, Callable, Dict, List, Optional, Protocol

from data.models import AuthSession, Post


AuthChangeCallback = Callable[[str, Optional[AuthSession]], None]


class Subscription(Protocol):
    """A handle for a change-stream registration."""

    def unsubscribe(self) -> None:
        """Stop receiving events. Calling it again has no effect."""
        ...


class PostStore(Protocol):
    """Protocol defining the row operations the feed needs.

    Every method raises RemoteServiceError on failure.
    """

    def list_posts(self) -> List[Post]:
        """Return all posts ordered by id, newest first."""
        ...

    def increment_likes(self, post_id: int, current_likes: int) -> None:
        """Add one like to a post.

        Args:
            post_id: Id of the post to update.
            current_likes: The counter value the caller last saw.
        """
        ...

    def insert_post(self, row: Dict[str, Any]) -> Optional[Post]:
        """Insert a post row and return the stored post when the backend echoes it."""
        ...


class AuthBackend(Protocol):
    """Protocol defining the auth operations of the hosted backend."""

    def get_session(self) -> Optional[AuthSession]:
        """Return the current session, or None when there is none or it cannot be read."""
        ...

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Subscription:
        """Register for (event, session) notifications until unsubscribed."""
        ...

    def sign_in_with_oauth(self, provider: Optional[str] = None) -> str:
        """Start an OAuth flow and return the URL the user must visit."""
        ...

    def set_session_from_url(self, callback_url: str) -> AuthSession:
        """Complete a sign-in redirect and return the new session."""
        ...

    def sign_out(self) -> None:
        """End the current session."""
        ...


class IdentityProvider(Protocol):
    """Protocol for a delegated login provider (social or embedded wallet)."""

    ready: bool
    user: Optional[Dict[str, Any]]

    def login(self) -> Any:
        ...

    def logout(self) -> Any:
        ...
