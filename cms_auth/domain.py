"""Defines identity, session and audit concepts for the CMS auth core."""

from typing import Any, Optional, NamedTuple
from datetime import datetime
from enum import Enum

from . import util


class Role(Enum):
    """Closed set of roles that an identity may hold."""

    ADMINISTRATOR = 'admin'
    CONTRIBUTOR = 'writer'
    STANDARD = 'user'

    @classmethod
    def coerce(cls, value: Any) -> 'Role':
        """
        Get a :class:`.Role` from a role or its serialized value.

        Raises
        ------
        :class:`ValueError`
            Raised if ``value`` is not a known role. Typos must not quietly
            fall through as "no match".

        """
        if isinstance(value, cls):
            return value
        return cls(value)


class Action(str, Enum):
    """Known activity log actions."""

    LOGIN_SUCCESS = 'LOGIN_SUCCESS'
    LOGIN_FAILED = 'LOGIN_FAILED'
    LOGOUT = 'LOGOUT'


class Origin(NamedTuple):
    """Where a request came from."""

    ip_address: Optional[str] = None
    """Network address of the client."""

    user_agent: Optional[str] = None
    """Client descriptor, e.g. the User-Agent header."""


class User(NamedTuple):
    """
    Represents an identity known to the user-management collaborator.

    The password hash is deliberately not part of this structure, so that a
    :class:`.User` can be handed back to callers as-is.
    """

    user_id: str
    """Unique identifier for the user."""

    email: str
    """The user's primary e-mail address."""

    username: str = ''
    """Slug-like username."""

    role: Role = Role.STANDARD
    """The role that governs what the user may do."""

    active: bool = True
    """Deactivated accounts may not log in."""

    verified: bool = False
    """Whether or not the user's e-mail address has been verified."""

    last_login: Optional[datetime] = None
    """When the user last authenticated successfully."""


class Session(NamedTuple):
    """A server-tracked, revocable login session."""

    session_id: str
    """Internal identifier for the session record."""

    user_id: str
    """The user for which the session was created."""

    token: str
    """Opaque, unguessable token handed to the client."""

    expires_at: datetime
    """Absolute expiry; the session is inert from this instant onward."""

    created_at: datetime
    """When the session was created."""

    last_accessed: Optional[datetime] = None
    """When the session was last used."""

    origin: Origin = Origin()
    """Where the login that created this session came from."""

    @property
    def expired(self) -> bool:
        """Expired if the current time is at or after :attr:`.expires_at`."""
        return util.now() >= self.expires_at

    @property
    def expires(self) -> int:
        """
        Number of seconds until the session expires.

        If the session is already expired, returns 0.
        """
        duration = (self.expires_at - util.now()).total_seconds()
        return max(int(duration), 0)


class TokenClaims(NamedTuple):
    """Identity claims carried by a signed token."""

    user_id: str
    email: str
    role: Role
    issued_at: datetime
    expires_at: datetime


class RateLimitEntry(NamedTuple):
    """Attempt counter for a single identifier."""

    identifier: str
    count: int
    reset_at: datetime


class RateLimitStatus(NamedTuple):
    """Snapshot of the rate-limit state of an identifier."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime

    @property
    def retry_after(self) -> int:
        """Seconds until another attempt will be accepted (0 if allowed)."""
        if self.allowed:
            return 0
        delta = (self.reset_at - util.now()).total_seconds()
        return max(int(delta) + 1, 0)


class ActivityEntry(NamedTuple):
    """A single line of the audit trail."""

    user_id: Optional[str]
    action: str
    description: Optional[str] = None
    origin: Origin = Origin()
    metadata: dict = {}
    created_at: Optional[datetime] = None


class LoginResult(NamedTuple):
    """Outcome of an authentication attempt."""

    success: bool
    user: Optional[User] = None
    session_token: Optional[str] = None
    signed_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    message: Optional[str] = None
    rate_limited: bool = False


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    Child NamedTuples are cast recursively, datetimes become ISO-8601 strings
    and enums are replaced by their values, so that the result can be passed
    straight to :func:`json.dumps`.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}

    def _cast(value: Any) -> Any:
        if hasattr(value, '_asdict'):
            return to_dict(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, list):
            return [_cast(o) for o in value]
        return value

    return {key: _cast(value) for key, value in obj._asdict().items()}
