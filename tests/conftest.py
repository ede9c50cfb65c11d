"""
Shared Test Fixtures for the Link Feed client

This module provides common fixtures used across all test modules.
Fixtures include mocks for settings and HTTP responses, in-memory
doubles for the hosted backend, and data factories for test objects.
"""

import json
import pytest
from unittest.mock import MagicMock, patch
from typing import Any, Dict, List, Optional
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings  # noqa: F401  (loaded so config.settings can be patched)
from data.models import AuthSession, Post
from utils.exceptions import AuthenticationError, QueryError


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Mock the settings module with test configuration values.

    This fixture patches config.settings with safe test values, preventing
    tests from reaching a real backend.

    Returns:
        MagicMock: A mock settings object with default test values.
    """
    with patch('config.settings') as mock_settings_module:
        mock_settings_module.SUPABASE_URL = "https://test-project.example.co"
        mock_settings_module.SUPABASE_ANON_KEY = "test-anon-key"
        mock_settings_module.REST_PATH = "/rest/v1"
        mock_settings_module.AUTH_PATH = "/auth/v1"
        mock_settings_module.POSTS_TABLE = "posts"
        mock_settings_module.LIKE_RPC_FUNCTION = ""
        mock_settings_module.HTTP_TIMEOUT = 10.0
        mock_settings_module.OAUTH_PROVIDER = "twitter"
        mock_settings_module.OAUTH_REDIRECT_URL = ""
        mock_settings_module.SESSION_FILE = ""
        mock_settings_module.SELF_LIKE_GUARD = True
        mock_settings_module.LOG_LEVEL = "INFO"

        yield mock_settings_module


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(status_code=200, json_data=[{'id': 1}])

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Any = None,
        url: str = 'https://test-project.example.co'
    ) -> MagicMock:
        """
        Create a mock HTTP response object.

        Args:
            status_code: HTTP status code (default 200).
            json_data: Value returned from response.json().
            url: The URL of the response.

        Returns:
            MagicMock: A mock response object mimicking requests.Response.
        """
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.url = url
        mock_response.ok = 200 <= status_code < 300

        if json_data is not None:
            mock_response.content = json.dumps(json_data).encode('utf-8')
            mock_response.json.return_value = json_data
        else:
            mock_response.content = b''
            mock_response.json.side_effect = ValueError("No JSON data")

        if status_code >= 400:
            from requests.exceptions import HTTPError
            mock_response.raise_for_status.side_effect = HTTPError(
                f"{status_code} Error",
                response=mock_response
            )
        else:
            mock_response.raise_for_status.return_value = None

        return mock_response

    return _create_response


@pytest.fixture
def mock_http():
    """A stand-in for requests.Session; set mock_http.request.return_value per test."""
    return MagicMock()


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def post_factory():
    """
    Factory fixture for creating Post test objects.

    Usage:
        def test_feed(post_factory):
            post = post_factory(id=3, author_name='alice', likes=2)

    Returns:
        callable: A factory function for creating Post objects.
    """
    def _create_post(
        id: int = 1,
        title: Optional[str] = None,
        link: Optional[str] = None,
        likes: int = 0,
        author_name: Optional[str] = None,
        author_image: Optional[str] = None
    ) -> Post:
        if author_name is not None and author_image is None:
            author_image = f"https://example.com/{author_name}.png"
        return Post(
            id=id,
            title=title or f"Episode {id}",
            link=link or f"https://example.com/episode-{id}",
            likes=likes,
            author_name=author_name,
            author_image=author_image,
        )

    return _create_post


def backend_user(user_name: str = "bob", avatar_url: str = "https://example.com/bob.png",
                 **metadata) -> Dict[str, Any]:
    """Build a user record shaped like the backend auth service returns."""
    meta = {"user_name": user_name, "avatar_url": avatar_url}
    meta.update(metadata)
    return {"id": f"uid-{user_name}", "email": f"{user_name}@example.com", "user_metadata": meta}


# =============================================================================
# Backend Doubles
# =============================================================================

class FakePostStore:
    """In-memory posts table implementing the PostStore protocol."""

    def __init__(self, posts: Optional[List[Post]] = None):
        self.rows: Dict[int, Dict[str, Any]] = {}
        for post in posts or []:
            self.rows[post.id] = {
                "id": post.id, "title": post.title, "link": post.link, "likes": post.likes,
                "author_name": post.author_name, "author_image": post.author_image,
            }
        self.fail_list = False
        self.fail_increment = False
        self.fail_insert = False
        self.list_calls = 0
        self.increment_calls: List[tuple] = []
        self.insert_calls: List[Dict[str, Any]] = []

    def list_posts(self) -> List[Post]:
        self.list_calls += 1
        if self.fail_list:
            raise QueryError("select posts failed: 500 Error")
        return [Post.from_row(row) for _, row in sorted(self.rows.items(), reverse=True)]

    def increment_likes(self, post_id: int, current_likes: int) -> None:
        self.increment_calls.append((post_id, current_likes))
        if self.fail_increment:
            raise QueryError("update likes failed: 500 Error")
        self.rows[post_id]["likes"] += 1

    def insert_post(self, row: Dict[str, Any]) -> Optional[Post]:
        self.insert_calls.append(dict(row))
        if self.fail_insert:
            raise QueryError("insert post failed: 500 Error")
        new_id = max(self.rows, default=0) + 1
        self.rows[new_id] = dict(row, id=new_id)
        return Post.from_row(self.rows[new_id])


class FakeSubscription:
    def __init__(self, backend: "FakeAuthBackend", callback):
        self.backend = backend
        self.callback = callback
        self.unsubscribe_calls = 0

    def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        if self.callback in self.backend.listeners:
            self.backend.listeners.remove(self.callback)


class FakeAuthBackend:
    """In-memory auth service implementing the AuthBackend protocol."""

    def __init__(self, user: Optional[Dict[str, Any]] = None):
        self.session = AuthSession(access_token="token", user=user) if user else None
        self.listeners: List[Any] = []
        self.subscriptions: List[FakeSubscription] = []
        self.fail_get_session = False
        self.fail_sign_out = False
        self.sign_out_calls = 0

    def get_session(self) -> Optional[AuthSession]:
        if self.fail_get_session:
            raise AuthenticationError("get user failed: 401 Error")
        return self.session

    def on_auth_state_change(self, callback) -> FakeSubscription:
        self.listeners.append(callback)
        subscription = FakeSubscription(self, callback)
        self.subscriptions.append(subscription)
        callback("INITIAL_SESSION", self.session)
        return subscription

    def emit(self, event: str, session: Optional[AuthSession]) -> None:
        self.session = session
        for callback in list(self.listeners):
            callback(event, session)

    def sign_in_as(self, user: Dict[str, Any]) -> None:
        self.emit("SIGNED_IN", AuthSession(access_token="token", user=user))

    def sign_in_with_oauth(self, provider: Optional[str] = None) -> str:
        return f"https://test-project.example.co/auth/v1/authorize?provider={provider or 'twitter'}"

    def set_session_from_url(self, callback_url: str) -> AuthSession:
        if "access_token" not in callback_url:
            raise AuthenticationError("Sign-in redirect carried no access token")
        session = AuthSession(access_token="token", user=backend_user("carol"))
        self.emit("SIGNED_IN", session)
        return session

    def sign_out(self) -> None:
        self.sign_out_calls += 1
        self.emit("SIGNED_OUT", None)
        if self.fail_sign_out:
            raise AuthenticationError("sign out failed: 500 Error")


@pytest.fixture
def fake_store(post_factory):
    """A posts table holding three posts, one of them anonymous."""
    return FakePostStore([
        post_factory(id=40, author_name="carol", likes=1),
        post_factory(id=41, author_name=None, likes=0),
        post_factory(id=42, author_name="alice", likes=3),
    ])


@pytest.fixture
def fake_auth():
    """An auth service with nobody signed in."""
    return FakeAuthBackend()
