"""
Custom Exception Classes for the Link Feed client

Every call to the Remote Data Service either succeeds or fails with a
RemoteServiceError. The subclasses only say which endpoint family failed;
callers handle them all the same way.
"""


class FeedError(Exception):
    """Base exception for all Link Feed errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(FeedError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Remote Data Service Errors
# =============================================================================

class RemoteServiceError(FeedError):
    """Raised when a request to the hosted backend fails for any reason."""
    pass


class QueryError(RemoteServiceError):
    """Raised when a row select, update or insert fails."""
    pass


class AuthenticationError(RemoteServiceError):
    """Raised when a session, sign-in or sign-out request fails."""
    pass
