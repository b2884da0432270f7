"""
Internal service API for the session store.

Used to create, look up, and invalidate user sessions.
"""

import json
import uuid
import secrets
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

import dateutil.parser
import redis
from retry import retry

from .. import domain, logging, util
from ..exceptions import SessionCreationFailed, SessionDeletionFailed, \
    SessionTokenCollision, StoreUnavailable

logger = logging.getLogger(__name__)

TOKEN_BYTES = 48
DEFAULT_DURATION = 7 * 24 * 60 * 60


def generate_session_token() -> str:
    """Generate an opaque session token with 48 bytes of entropy."""
    return secrets.token_hex(TOKEN_BYTES)


class SessionStore(ABC):
    """
    Creates, looks up, and invalidates sessions.

    A session moves from *active* to *expired* when its ``expires_at`` passes,
    and from *expired* to *purged* when it is physically removed. Only active
    sessions are ever returned by :meth:`lookup`.
    """

    def __init__(self, duration: int = DEFAULT_DURATION) -> None:
        self._duration = duration

    def create(self, user_id: str, duration: Optional[int] = None,
               origin: Optional[domain.Origin] = None) -> domain.Session:
        """
        Create a new session.

        Parameters
        ----------
        user_id : str
        duration : int
            Seconds until the session expires. Defaults to the store-wide
            duration.
        origin : :class:`domain.Origin`

        Returns
        -------
        :class:`domain.Session`

        Raises
        ------
        :class:`SessionCreationFailed`
            Raised if the store cannot save the session. This is not retried.

        """
        if duration is None:
            duration = self._duration
        try:
            return self._create(str(user_id), duration,
                                origin or domain.Origin())
        except SessionTokenCollision as e:
            raise SessionCreationFailed('Could not allocate a token') from e

    @retry(SessionTokenCollision, tries=3)
    def _create(self, user_id: str, duration: int,
                origin: domain.Origin) -> domain.Session:
        created_at = util.now()
        session = domain.Session(
            session_id='',
            user_id=user_id,
            token=generate_session_token(),
            expires_at=created_at + timedelta(seconds=duration),
            created_at=created_at,
            last_accessed=created_at,
            origin=origin
        )
        session = self._save(session)
        logger.debug('Created session %s for user %s', session.session_id,
                     user_id)
        return session

    @abstractmethod
    def _save(self, session: domain.Session) -> domain.Session:
        """
        Persist a new session.

        Must raise :class:`SessionTokenCollision` if the token is taken, and
        :class:`SessionCreationFailed` for any other failure.
        """

    @abstractmethod
    def lookup(self, token: str) -> Optional[domain.Session]:
        """
        Get an active session by token.

        Returns ``None`` both for tokens that never existed and for sessions
        that have expired.
        """

    @abstractmethod
    def invalidate(self, token: str) -> None:
        """Delete a session. Unknown tokens are not an error."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove expired sessions, and return how many were removed."""


class RedisSessionStore(SessionStore):
    """
    Keeps sessions in Redis.

    The StrictRedis instance is thread safe and connections are attached at
    the time a command is executed. Each session is stored as JSON under its
    token, with a TTL matching its expiry, so that Redis purges it by itself.
    """

    def __init__(self, host: str = 'localhost', port: int = 6379,
                 db: int = 0, duration: int = DEFAULT_DURATION,
                 prefix: str = 'cms-auth:session:',
                 connection: Optional[redis.StrictRedis] = None) -> None:
        """Open the connection to Redis."""
        super(RedisSessionStore, self).__init__(duration)
        if connection is None:
            logger.debug('New Redis connection at %s, port %s', host, port)
            connection = redis.StrictRedis(host=host, port=port, db=db)
        self.r = connection
        self._prefix = prefix

    def _key(self, token: str) -> str:
        return f'{self._prefix}{token}'

    def _save(self, session: domain.Session) -> domain.Session:
        session = session._replace(session_id=str(uuid.uuid4()))
        ttl = int((session.expires_at - session.created_at).total_seconds())
        try:
            stored = self.r.set(self._key(session.token),
                                json.dumps(domain.to_dict(session)),
                                ex=max(ttl, 1), nx=True)
        except redis.exceptions.ConnectionError as e:
            raise SessionCreationFailed(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionCreationFailed(f'Failed to create: {e}') from e
        if not stored:
            raise SessionTokenCollision('Session token already in use')
        return session

    def lookup(self, token: str) -> Optional[domain.Session]:
        """Get an active session by token."""
        if not token:
            return None
        try:
            raw = self.r.get(self._key(token))
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Failed to load session: {e}') from e
        if not raw:
            return None
        try:
            session = _from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.error('Corrupted session record: %s', type(e).__name__)
            return None
        # Redis may not have evicted it yet.
        if session.expires_at <= util.now():
            return None
        return session

    def invalidate(self, token: str) -> None:
        """Delete a session in the key-value store."""
        if not token:
            return
        try:
            self.r.delete(self._key(token))
        except redis.exceptions.ConnectionError as e:
            raise SessionDeletionFailed(f'Connection failed: {e}') from e
        except redis.exceptions.RedisError as e:
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e

    def purge_expired(self) -> int:
        """Nothing to do; Redis expires keys itself."""
        return 0


def _from_dict(data: dict) -> domain.Session:
    origin = data.get('origin') or {}
    last_accessed = data.get('last_accessed')
    return domain.Session(
        session_id=data['session_id'],
        user_id=data['user_id'],
        token=data['token'],
        expires_at=dateutil.parser.parse(data['expires_at']),
        created_at=dateutil.parser.parse(data['created_at']),
        last_accessed=(dateutil.parser.parse(last_accessed)
                       if last_accessed else None),
        origin=domain.Origin(**origin)
    )
