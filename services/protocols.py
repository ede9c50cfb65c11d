"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the services of the Link
Feed client. These protocols let the feed controller work with either
session variant and make both easy to replace in tests.

Protocols defined:
- SessionHolder: Tracks the caller's identity and signs them in or out
"""

from typing import Optional, Protocol

from data.models import Identity


class SessionHolder(Protocol):
    """Protocol defining the interface shared by both session variants.

    Implementations should provide:
    - The current identity, or None when nobody is signed in
    - start()/close() bracketing the lifetime of the owning view
    - sign_in()/sign_out()
    """

    identity: Optional[Identity]

    def start(self) -> Optional[Identity]:
        """Resolve the initial identity and begin watching for changes.

        Returns:
            The identity after initialization, or None.
        """
        ...

    def close(self) -> None:
        """Stop watching for identity changes. Safe to call more than once."""
        ...

    def sign_in(self, provider: Optional[str] = None) -> Optional[str]:
        """Begin an external sign-in flow.

        Args:
            provider: Optional provider selector.

        Returns:
            A URL the user must visit, when the flow needs one.
        """
        ...

    def sign_out(self) -> None:
        """End the session. The local identity is cleared immediately."""
        ...
