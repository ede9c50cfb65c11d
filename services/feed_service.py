"""
Feed Service Module

This module holds the state behind the feed page: the post list, the draft
of a new post and whether its dialog is open. FeedController is the only
place that state changes. Every remote write is applied locally only after
the backend reports success; failures are logged and leave state untouched.
"""

import dataclasses
from typing import List, Optional

from config import settings
from data.models import DraftPost, Post
from data.protocols import PostStore
from services.protocols import SessionHolder
from utils.exceptions import RemoteServiceError
from utils.logger import get_logger

logger = get_logger(__name__)


class FeedController:
    """
    View controller owning the post list, the draft and the session.

    Attributes:
        posts: Posts ordered by id, newest first.
        draft: The post being composed.
        dialog_open: Whether the compose dialog is showing.
    """

    def __init__(
        self,
        store: PostStore,
        session: SessionHolder,
        self_like_guard: Optional[bool] = None
    ):
        """
        Initialize the controller.

        Args:
            store: Row operations on the posts table.
            session: Holder of the caller's identity.
            self_like_guard: Refuse likes from a post's own author.
                Defaults to settings.SELF_LIKE_GUARD.
        """
        self.store = store
        self.session = session
        self.self_like_guard = settings.SELF_LIKE_GUARD if self_like_guard is None else self_like_guard

        self.posts: List[Post] = []
        self.draft = DraftPost()
        self.dialog_open = False
        self.last_posted: Optional[Post] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def mount(self) -> None:
        """Start the session holder and load the feed."""
        self.session.start()
        self.fetch_all()

    def unmount(self) -> None:
        """Release the session holder's subscription."""
        self.session.close()

    def __enter__(self):
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unmount()
        return False

    # -------------------------------------------------------------------------
    # Post list
    # -------------------------------------------------------------------------

    def fetch_all(self) -> List[Post]:
        """
        Replace the local list with the backend's posts, newest first.

        Returns:
            List[Post]: The list after the attempt (unchanged on failure).
        """
        try:
            posts = self.store.list_posts()
        except RemoteServiceError as e:
            logger.error(f"Error fetching posts: {e}")
            return self.posts

        self.posts = sorted(posts, key=lambda p: p.id, reverse=True)
        logger.info(f"Loaded {len(self.posts)} posts")
        return self.posts

    def find_post(self, post_id: int) -> Optional[Post]:
        for post in self.posts:
            if post.id == post_id:
                return post
        return None

    def like(self, post_id: int) -> Optional[Post]:
        """
        Add one like to a post on behalf of the current identity.

        Nothing happens when nobody is signed in, when the post is not in
        the local list, or when the guard is on and the caller wrote the post.

        Args:
            post_id: Id of the post to like.

        Returns:
            Optional[Post]: The updated post, or None when nothing changed.
        """
        identity = self.session.identity
        if identity is None:
            logger.debug(f"Ignoring like on post {post_id}: not signed in")
            return None

        post = self.find_post(post_id)
        if post is None:
            logger.debug(f"Ignoring like on unknown post {post_id}")
            return None

        if self.self_like_guard and identity.matches(post.author_name):
            logger.debug(f"Ignoring like on post {post_id}: caller is the author")
            return None

        try:
            self.store.increment_likes(post.id, post.likes)
        except RemoteServiceError as e:
            logger.error(f"Error updating likes: {e}")
            return None

        updated = None
        for index, current in enumerate(self.posts):
            if current.id == post_id:
                updated = dataclasses.replace(current, likes=current.likes + 1)
                self.posts[index] = updated
                break

        logger.info(f"Liked post {post_id}")
        return updated

    # -------------------------------------------------------------------------
    # Composition
    # -------------------------------------------------------------------------

    def open_dialog(self) -> None:
        self.dialog_open = True

    def close_dialog(self) -> None:
        self.dialog_open = False

    def update_draft(self, title: Optional[str] = None, link: Optional[str] = None,
                     is_anonymous: Optional[bool] = None) -> DraftPost:
        """Change any of the draft's fields, leaving the others as they are."""
        if title is not None:
            self.draft.title = title
        if link is not None:
            self.draft.link = link
        if is_anonymous is not None:
            self.draft.is_anonymous = bool(is_anonymous)
        return self.draft

    def submit(self, draft: Optional[DraftPost] = None) -> bool:
        """
        Insert a post built from the draft.

        An incomplete draft is ignored without contacting the backend. On
        success the dialog is closed and the feed reloaded; the controller's
        own draft is reset only when it was the one submitted. The stored
        post, when the backend echoes it, is kept in last_posted.

        Args:
            draft: Draft to submit instead of the controller's own.

        Returns:
            bool: True if the post was stored.
        """
        own_draft = draft is None or draft is self.draft
        draft = self.draft if draft is None else draft
        if not draft.is_complete():
            logger.debug("Ignoring submit: title and link are required")
            return False

        row = draft.to_row(self.session.identity)
        try:
            posted = self.store.insert_post(row)
        except RemoteServiceError as e:
            logger.error(f"Error inserting post: {e}")
            return False

        logger.info(f"Posted {row['title']!r} as {row['author_name'] or 'anonymous'}")
        self.last_posted = posted
        if own_draft:
            self.draft = DraftPost()
        self.dialog_open = False
        self.fetch_all()
        return True
