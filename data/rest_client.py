"""
Posts Table Client for the Link Feed

This module talks to the hosted backend's row API for the posts table.
It provides the three row operations the feed needs: listing posts newest
first, adding a like, and inserting a new post.
"""

from typing import Any, Callable, Dict, List, Optional

import requests

from config import settings
from data.models import Post
from utils.exceptions import QueryError
from utils.logger import get_logger

logger = get_logger(__name__)


class RestClient:
    """Row-level client for the posts table of the hosted backend."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: Optional[str] = None,
        like_rpc: Optional[str] = None,
        access_token: Optional[Callable[[], Optional[str]]] = None,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Project URL of the hosted backend.
            api_key: Public (anon) API key sent with every request.
            table: Name of the posts table.
            like_rpc: Name of a server function that adds one like atomically.
            access_token: Callable returning the signed-in user's token, if any.
            http: Optional requests session to reuse.
            timeout: Seconds to wait for each request.
        """
        self.base_url = (base_url if base_url is not None else settings.SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self.table = table or settings.POSTS_TABLE
        self.like_rpc = like_rpc if like_rpc is not None else settings.LIKE_RPC_FUNCTION
        self.access_token = access_token
        self.http = http or requests.Session()
        self.timeout = timeout or settings.HTTP_TIMEOUT

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        token = self.access_token() if self.access_token else None
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _table_url(self) -> str:
        return f"{self.base_url}{settings.REST_PATH}/{self.table}"

    def _request(self, method: str, url: str, operation: str, **kwargs) -> Any:
        """
        Send a request and return its decoded JSON body.

        Raises:
            QueryError: On transport errors, non-2xx responses or undecodable bodies.
        """
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            raise QueryError(f"{operation} failed: {e}") from e

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise QueryError(f"{operation} returned an invalid body: {e}") from e

    @staticmethod
    def _to_posts(rows: Any, operation: str) -> List[Post]:
        """
        Convert decoded rows to posts.

        Raises:
            QueryError: If the body is not a list of well-formed post rows.
        """
        if not isinstance(rows, list):
            raise QueryError(f"{operation} returned {type(rows).__name__} instead of a list of rows")
        try:
            return [Post.from_row(row) for row in rows]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise QueryError(f"{operation} returned a malformed row: {e!r}") from e

    def list_posts(self) -> List[Post]:
        """
        Retrieve every post, newest id first.

        Returns:
            List[Post]: Posts ordered by id descending.
        """
        rows = self._request(
            "GET",
            self._table_url(),
            "select posts",
            params={"select": "*", "order": "id.desc"},
            headers=self._headers(),
        ) or []

        posts = self._to_posts(rows, "select posts")
        logger.debug(f"Fetched {len(posts)} posts from {self.table}")
        return posts

    def increment_likes(self, post_id: int, current_likes: int) -> None:
        """
        Add one like to a post.

        Uses the server function when one is configured. Otherwise writes
        current_likes + 1 only if the stored counter still equals
        current_likes, so a concurrent like is never silently overwritten.

        Args:
            post_id: Id of the post to update.
            current_likes: The counter value the caller last saw.

        Raises:
            QueryError: If the request fails or the counter moved in the meantime.
        """
        if self.like_rpc:
            self._request(
                "POST",
                f"{self.base_url}{settings.REST_PATH}/rpc/{self.like_rpc}",
                "increment likes",
                json={"post_id": post_id},
                headers=self._headers(),
            )
            logger.debug(f"Incremented likes for post {post_id} via {self.like_rpc}")
            return

        rows = self._request(
            "PATCH",
            self._table_url(),
            "update likes",
            params={"id": f"eq.{post_id}", "likes": f"eq.{current_likes}"},
            json={"likes": current_likes + 1},
            headers=self._headers(prefer="return=representation"),
        )
        if not isinstance(rows, list) or not rows:
            raise QueryError(
                f"update likes matched no row for post {post_id} at likes={current_likes}"
            )
        logger.debug(f"Updated likes for post {post_id} to {current_likes + 1}")

    def insert_post(self, row: Dict[str, Any]) -> Optional[Post]:
        """
        Insert a post row.

        Args:
            row: Column values without the id.

        Returns:
            Optional[Post]: The stored post when the backend echoes it back.
        """
        rows = self._request(
            "POST",
            self._table_url(),
            "insert post",
            json=[row],
            headers=self._headers(prefer="return=representation"),
        )
        if rows:
            post = self._to_posts(rows, "insert post")[0]
            logger.debug(f"Inserted post {post.id}")
            return post
        return None
