"""Exceptions."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate user with provided credentials."""


class InvalidCredentials(AuthenticationFailed):
    """Wrong e-mail or password; the two are deliberately not told apart."""


class AccountDeactivated(AuthenticationFailed):
    """The account exists but has been deactivated."""


class WeakInputError(ValueError):
    """Password does not meet the length requirements for hashing."""


class NoSuchUser(RuntimeError):
    """User does not exist."""


class InvalidToken(ValueError):
    """Token is malformed, expired, or carries a bad signature."""


class RateLimitExceeded(RuntimeError):
    """Too many attempts for an identifier within the current window."""


class StoreUnavailable(IOError):
    """The persistent store could not complete an operation."""


class SessionCreationFailed(StoreUnavailable):
    """Failed to create a session in the session store."""


class SessionDeletionFailed(StoreUnavailable):
    """Failed to delete a session in the session store."""


class SessionTokenCollision(RuntimeError):
    """A freshly generated session token is already in use."""


class ConfigurationError(RuntimeError):
    """Raised when a required configuration parameter is missing."""
