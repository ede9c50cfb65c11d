"""
Data Models for the Link Feed client

This module contains the data classes shared by the data layer, the session
layer and the feed controller.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Post:
    """A shared link with its like counter and optional attribution."""
    id: int                              # Server-assigned, newest is highest
    title: str
    link: str
    likes: int = 0
    author_name: Optional[str] = None    # None when posted anonymously
    author_image: Optional[str] = None   # None whenever author_name is None

    @property
    def is_anonymous(self) -> bool:
        return self.author_name is None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Post":
        """
        Build a Post from a row returned by the backend.

        A row without an author name is treated as anonymous, so its
        author image is dropped as well. A named row always carries a
        string image, empty when the backend has none.
        """
        author_name = row.get("author_name") or None
        author_image = (row.get("author_image") or "") if author_name else None
        return cls(
            id=int(row["id"]),
            title=row.get("title") or "",
            link=row.get("link") or "",
            likes=int(row.get("likes") or 0),
            author_name=author_name,
            author_image=author_image,
        )


@dataclass
class DraftPost:
    """Form state for a post that has not been submitted yet."""
    title: str = ""
    link: str = ""
    is_anonymous: bool = False

    def is_complete(self) -> bool:
        return bool(self.title.strip() and self.link.strip())

    def to_row(self, identity: Optional["Identity"]) -> Dict[str, Any]:
        """
        Build the insert payload for this draft.

        Attribution comes from the identity unless the draft is anonymous or
        there is no usable identity, in which case both author fields are None.
        """
        author_name = None
        author_image = None
        if not self.is_anonymous and identity is not None and identity.name:
            author_name = identity.name
            author_image = identity.image or ""
        return {
            "title": self.title.strip(),
            "link": self.link.strip(),
            "likes": 0,
            "author_name": author_name,
            "author_image": author_image,
        }


@dataclass(frozen=True)
class Profile:
    """Provider-neutral profile record used to resolve an Identity."""
    handle: Optional[str] = None          # Social handle (e.g. twitter username)
    wallet_address: Optional[str] = None
    display_name: Optional[str] = None    # Free-form name from user metadata
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class Identity:
    """
    The signed-in caller. An absent identity is represented by None.

    Attributes:
        name: Resolved display name, possibly empty.
        image: Avatar URL, possibly empty.
        aliases: Every other identifier the caller is known by.
    """
    name: str
    image: str = ""
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    def matches(self, author_name: Optional[str]) -> bool:
        """Check whether a post's author_name refers to this caller."""
        if not author_name:
            return False
        return author_name in {n for n in (self.name, *self.aliases) if n}


@dataclass
class AuthSession:
    """Tokens and raw user record issued by the backend auth service."""
    access_token: str
    refresh_token: Optional[str] = None
    user: Dict[str, Any] = field(default_factory=dict)
    expires_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "user": self.user,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthSession":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            user=data.get("user") or {},
            expires_at=data.get("expires_at"),
        )
