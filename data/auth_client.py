"""
Auth Client for the Link Feed

This module handles the hosted backend's auth endpoints. It keeps the
current tokens (in memory and in a small JSON file between runs), starts
OAuth sign-in, completes the redirect, signs out, and notifies listeners
whenever the session changes.
"""

import json
import os
import time
from itertools import count
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlparse

import requests

from config import settings
from data.models import AuthSession
from data.protocols import AuthChangeCallback
from utils.exceptions import AuthenticationError
from utils.logger import get_logger

logger = get_logger(__name__)

INITIAL_SESSION = "INITIAL_SESSION"
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthSubscription:
    """Registration on the auth change stream, released at most once."""

    def __init__(self, subscription_id: int, release: Callable[[int], None]):
        self.id = subscription_id
        self._release = release
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._release(self.id)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unsubscribe()
        return False


class AuthClient:
    """Client for sign-in, sign-out and session lookup against the hosted backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        session_file: Optional[str] = None,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        redirect_url: Optional[str] = None
    ):
        """
        Initialize the auth client.

        Args:
            base_url: Project URL of the hosted backend.
            api_key: Public (anon) API key.
            session_file: Where tokens are stored between runs; empty disables storage.
            http: Optional requests session to reuse.
            timeout: Seconds to wait for each request.
            redirect_url: Where the OAuth provider sends the user back to.
        """
        self.base_url = (base_url if base_url is not None else settings.SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self.session_file = session_file if session_file is not None else settings.SESSION_FILE
        self.http = http or requests.Session()
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.redirect_url = redirect_url if redirect_url is not None else settings.OAUTH_REDIRECT_URL

        self._session: Optional[AuthSession] = None
        self._loaded = False
        self._listeners: Dict[int, AuthChangeCallback] = {}
        self._ids = count(1)

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}{settings.AUTH_PATH}/{path}"

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method: str, path: str, operation: str,
                 token: Optional[str] = None, **kwargs) -> Any:
        try:
            response = self.http.request(
                method, self._url(path), headers=self._headers(token),
                timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise AuthenticationError(f"{operation} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise AuthenticationError(f"{operation} returned an invalid body: {e}") from e

    # -------------------------------------------------------------------------
    # Token storage
    # -------------------------------------------------------------------------

    def _load_stored_session(self) -> Optional[AuthSession]:
        if not self.session_file or not os.path.exists(self.session_file):
            return None
        try:
            with open(self.session_file, 'r', encoding='utf-8') as f:
                return AuthSession.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.session_file}: {e}")
            return None

    def _store_session(self, session: Optional[AuthSession]) -> None:
        if not self.session_file:
            return
        try:
            if session is None:
                if os.path.exists(self.session_file):
                    os.remove(self.session_file)
                return
            fd = os.open(self.session_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(session.to_dict(), f)
            os.chmod(self.session_file, 0o600)
        except OSError as e:
            logger.warning(f"Could not update session file {self.session_file}: {e}")

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._session = self._load_stored_session()
            self._loaded = True

    def _set_session(self, session: Optional[AuthSession], event: str) -> None:
        self._session = session
        self._loaded = True
        self._store_session(session)
        self._notify(event, session)

    @staticmethod
    def _session_from_token_response(data: Dict[str, Any]) -> AuthSession:
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in"):
            expires_at = int(time.time()) + int(data["expires_in"])
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            user=data.get("user") or {},
            expires_at=int(expires_at) if expires_at is not None else None,
        )

    # -------------------------------------------------------------------------
    # Change stream
    # -------------------------------------------------------------------------

    def on_auth_state_change(self, callback: AuthChangeCallback) -> AuthSubscription:
        """
        Register a callback for session changes.

        The callback is invoked once right away with INITIAL_SESSION and the
        session currently stored, then with every later change.

        Args:
            callback: Called as callback(event, session_or_None).

        Returns:
            AuthSubscription: Handle whose unsubscribe() stops the callbacks.
        """
        self._ensure_loaded()
        subscription_id = next(self._ids)
        self._listeners[subscription_id] = callback
        logger.debug(f"Auth listener {subscription_id} registered")
        self._call_listener(subscription_id, callback, INITIAL_SESSION, self._session)
        return AuthSubscription(subscription_id, self._remove_listener)

    def _remove_listener(self, subscription_id: int) -> None:
        self._listeners.pop(subscription_id, None)
        logger.debug(f"Auth listener {subscription_id} removed")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self, event: str, session: Optional[AuthSession]) -> None:
        logger.debug(f"Auth event {event}")
        for subscription_id, callback in list(self._listeners.items()):
            self._call_listener(subscription_id, callback, event, session)

    @staticmethod
    def _call_listener(subscription_id: int, callback: AuthChangeCallback,
                       event: str, session: Optional[AuthSession]) -> None:
        # One failing listener must not stop delivery to the others
        try:
            callback(event, session)
        except Exception as e:
            logger.error(f"Auth listener {subscription_id} failed on {event}: {e}", exc_info=True)

    # -------------------------------------------------------------------------
    # Session operations
    # -------------------------------------------------------------------------

    def access_token(self) -> Optional[str]:
        """Return the current access token without touching the network."""
        self._ensure_loaded()
        return self._session.access_token if self._session else None

    def get_session(self) -> Optional[AuthSession]:
        """
        Return the current session after checking it with the backend.

        A stored token that the backend rejects is refreshed once. Any
        failure is reported as no session.

        Returns:
            Optional[AuthSession]: The live session, or None.
        """
        self._ensure_loaded()
        session = self._session
        if session is None:
            return None

        try:
            user = self._request("GET", "user", "get user", token=session.access_token)
            session.user = user or session.user
            return session
        except AuthenticationError as e:
            logger.warning(f"Stored session rejected: {e}")

        if session.refresh_token:
            try:
                return self.refresh_session()
            except AuthenticationError as e:
                logger.warning(f"Session refresh failed: {e}")

        self._set_session(None, SIGNED_OUT)
        return None

    def refresh_session(self) -> AuthSession:
        """
        Exchange the refresh token for a new session.

        Raises:
            AuthenticationError: If there is no refresh token or the exchange fails.
        """
        self._ensure_loaded()
        if not self._session or not self._session.refresh_token:
            raise AuthenticationError("No refresh token available")

        data = self._request(
            "POST", "token", "refresh session",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": self._session.refresh_token},
        )
        if not data or not data.get("access_token"):
            raise AuthenticationError("refresh session returned no access token")

        session = self._session_from_token_response(data)
        self._set_session(session, TOKEN_REFRESHED)
        logger.info("Session refreshed")
        return session

    def sign_in_with_oauth(self, provider: Optional[str] = None) -> str:
        """
        Build the URL that starts an OAuth sign-in.

        Completion is observed through the change stream once
        set_session_from_url() receives the redirect.

        Args:
            provider: OAuth provider name, defaults to settings.OAUTH_PROVIDER.

        Returns:
            str: The authorize URL for the user to open.
        """
        query = {"provider": provider or settings.OAUTH_PROVIDER}
        if self.redirect_url:
            query["redirect_to"] = self.redirect_url
        url = f"{self._url('authorize')}?{urlencode(query)}"
        logger.info(f"OAuth sign-in started with {query['provider']}")
        return url

    def set_session_from_url(self, callback_url: str) -> AuthSession:
        """
        Complete an OAuth redirect carrying tokens in its fragment or query.

        Args:
            callback_url: The full URL the provider redirected to.

        Returns:
            AuthSession: The new session.

        Raises:
            AuthenticationError: If the redirect reports an error or carries no token.
        """
        parsed = urlparse(callback_url)
        params = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        params.update({k: v[0] for k, v in parse_qs(parsed.fragment).items()})

        if params.get("error"):
            raise AuthenticationError(
                f"Sign-in failed: {params.get('error_description') or params['error']}"
            )
        if not params.get("access_token"):
            raise AuthenticationError("Sign-in redirect carried no access token")

        return self.set_session(params["access_token"], params.get("refresh_token"),
                                expires_at=params.get("expires_at"),
                                expires_in=params.get("expires_in"))

    def set_session(self, access_token: str, refresh_token: Optional[str] = None,
                    expires_at: Optional[Any] = None,
                    expires_in: Optional[Any] = None) -> AuthSession:
        """
        Adopt a pair of tokens, look up their user and announce SIGNED_IN.

        Raises:
            AuthenticationError: If the backend rejects the access token.
        """
        user = self._request("GET", "user", "get user", token=access_token) or {}
        session = self._session_from_token_response({
            "access_token": access_token,
            "refresh_token": refresh_token,
            "expires_at": expires_at,
            "expires_in": expires_in,
            "user": user,
        })
        self._set_session(session, SIGNED_IN)
        logger.info("Signed in")
        return session

    def sign_out(self) -> None:
        """
        End the current session.

        Local tokens are always dropped and SIGNED_OUT is always announced;
        a failed remote logout is raised afterwards.

        Raises:
            AuthenticationError: If the backend logout request failed.
        """
        self._ensure_loaded()
        session = self._session
        error = None
        if session is not None:
            try:
                self._request("POST", "logout", "sign out", token=session.access_token)
            except AuthenticationError as e:
                error = e

        self._set_session(None, SIGNED_OUT)
        logger.info("Signed out")

        if error is not None:
            raise error
