class McTuiError(Exception):
    """Base exception for mctui."""


class RepositoryError(McTuiError):
    """Raised when the instances root cannot be listed."""


class MetadataError(McTuiError):
    """Raised when a single instance metadata source is unreadable or malformed."""


class DispatchError(McTuiError):
    """Raised when an external command could not be started."""
