"""
Per-identifier attempt limiting.

A fixed window is opened by the first attempt for an identifier. Attempts
within the window are counted, and once the count exceeds the limit further
attempts are refused until the window lapses. After that the next attempt
opens a fresh window, regardless of the old count.

Two implementations are provided. :class:`.InMemoryRateLimiter` keeps its
counters in process memory; they are not shared between processes or hosts,
so a deployment with several instances effectively multiplies the limit.
:class:`.RedisRateLimiter` keeps the counters in Redis, shared by every
instance. Both expose the same interface, so call sites do not change.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import redis
from flask import current_app, has_app_context

from . import config, domain, logging, util
from .exceptions import ConfigurationError, StoreUnavailable
from .globals import get_application_config

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_WINDOW = 15 * 60
SWEEP_INTERVAL = 5 * 60
"""Lapsed in-memory entries are dropped at most this often, in seconds."""


class RateLimiter(ABC):
    """Bounds the number of attempts per identifier within a time window."""

    @abstractmethod
    def allow(self, identifier: str, max_attempts: int,
              window: float) -> bool:
        """
        Count an attempt, and decide whether it may proceed.

        Parameters
        ----------
        identifier : str
            What is being limited, e.g. a network address and account.
        max_attempts : int
            The attempt that brings the count to this number is still
            allowed; the next one is not.
        window : float
            Length of the window in seconds.

        Returns
        -------
        bool

        """

    @abstractmethod
    def reset(self, identifier: str) -> None:
        """Forget all attempts for ``identifier``."""

    @abstractmethod
    def peek(self, identifier: str) -> Optional[domain.RateLimitEntry]:
        """Get the live entry for ``identifier`` without counting."""

    def status(self, identifier: str, max_attempts: int,
               window: float) -> domain.RateLimitStatus:
        """Describe whether the next attempt would be allowed."""
        entry = self.peek(identifier)
        if entry is None:
            return domain.RateLimitStatus(
                allowed=True,
                limit=max_attempts,
                remaining=max_attempts,
                reset_at=util.now() + timedelta(seconds=window)
            )
        return domain.RateLimitStatus(
            allowed=entry.count < max_attempts,
            limit=max_attempts,
            remaining=max(max_attempts - entry.count, 0),
            reset_at=entry.reset_at
        )


class InMemoryRateLimiter(RateLimiter):
    """Counters in a dict, guarded by a lock."""

    def __init__(self, sweep_interval: float = SWEEP_INTERVAL) -> None:
        self._entries: Dict[str, domain.RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._sweep_interval = timedelta(seconds=sweep_interval)
        self._last_sweep: Optional[datetime] = None

    def allow(self, identifier: str, max_attempts: int,
              window: float) -> bool:
        now = util.now()
        with self._lock:
            if self._last_sweep is None:
                self._last_sweep = now
            elif now - self._last_sweep >= self._sweep_interval:
                self._sweep(now)
            entry = self._entries.get(identifier)
            if entry is None or now > entry.reset_at:
                entry = domain.RateLimitEntry(
                    identifier=identifier,
                    count=1,
                    reset_at=now + timedelta(seconds=window)
                )
            else:
                entry = entry._replace(count=entry.count + 1)
            self._entries[identifier] = entry
        if entry.count > max_attempts:
            logger.info('Rate limit exceeded (%i attempts)', entry.count)
            return False
        return True

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._entries.pop(identifier, None)

    def peek(self, identifier: str) -> Optional[domain.RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(identifier)
        if entry is None or util.now() > entry.reset_at:
            return None
        return entry

    def sweep(self) -> int:
        """Drop entries whose window has lapsed. Returns how many."""
        with self._lock:
            return self._sweep(util.now())

    def _sweep(self, now: datetime) -> int:
        """Caller must hold the lock."""
        lapsed = [key for key, entry in self._entries.items()
                  if now > entry.reset_at]
        for key in lapsed:
            del self._entries[key]
        self._last_sweep = now
        if lapsed:
            logger.debug('Swept %i lapsed rate limit entries', len(lapsed))
        return len(lapsed)

    def size(self) -> int:
        """Number of entries held, lapsed or not."""
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()


class RedisRateLimiter(RateLimiter):
    """
    Counters in Redis, shared by every instance of the application.

    The window is the TTL of the counter key: it is set together with the
    key, and the key disappears when the window lapses.
    """

    def __init__(self, host: str = 'localhost', port: int = 6379,
                 db: int = 0, prefix: str = 'cms-auth:ratelimit:',
                 connection: Optional[redis.StrictRedis] = None) -> None:
        if connection is None:
            connection = redis.StrictRedis(host=host, port=port, db=db)
        self.r = connection
        self._prefix = prefix

    def _key(self, identifier: str) -> str:
        return f'{self._prefix}{identifier}'

    def allow(self, identifier: str, max_attempts: int,
              window: float) -> bool:
        key = self._key(identifier)
        try:
            with self.r.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, px=max(int(window * 1000), 1), nx=True)
                pipe.incr(key)
                _, count = pipe.execute()
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Rate limit check failed: {e}') from e
        if int(count) > max_attempts:
            logger.info('Rate limit exceeded (%i attempts)', int(count))
            return False
        return True

    def reset(self, identifier: str) -> None:
        try:
            self.r.delete(self._key(identifier))
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Rate limit reset failed: {e}') from e

    def peek(self, identifier: str) -> Optional[domain.RateLimitEntry]:
        key = self._key(identifier)
        try:
            with self.r.pipeline(transaction=True) as pipe:
                pipe.get(key)
                pipe.pttl(key)
                count, ttl = pipe.execute()
        except redis.exceptions.RedisError as e:
            raise StoreUnavailable(f'Rate limit lookup failed: {e}') from e
        if count is None or int(ttl) < 0:
            return None
        return domain.RateLimitEntry(
            identifier=identifier,
            count=int(count),
            reset_at=util.now() + timedelta(milliseconds=int(ttl))
        )


_default = InMemoryRateLimiter()
"""Process-wide limiter used by the module-level helpers."""


def get_rate_limiter(app: Optional[Any] = None) -> RateLimiter:
    """Get the limiter selected by ``RATE_LIMIT_BACKEND``."""
    cfg = get_application_config(app)
    backend = cfg.get('RATE_LIMIT_BACKEND', config.RATE_LIMIT_BACKEND)
    if backend == 'memory':
        return _default
    if backend == 'redis':
        return RedisRateLimiter(
            host=cfg.get('REDIS_HOST', config.REDIS_HOST),
            port=int(cfg.get('REDIS_PORT', config.REDIS_PORT)),
            db=int(cfg.get('REDIS_DATABASE', config.REDIS_DATABASE)),
            prefix=cfg.get('REDIS_PREFIX', config.REDIS_PREFIX) + 'ratelimit:'
        )
    raise ConfigurationError(f'Unknown rate limit backend: {backend}')


def current_rate_limiter() -> RateLimiter:
    """
    Get the limiter that logins are counted against.

    Inside an application with :class:`cms_auth.ext.Auth` installed, this is
    the limiter of the installed service, whatever its backend. Otherwise it
    is the process-wide in-memory limiter.
    """
    if has_app_context():
        installed = current_app.extensions.get('cms_auth')
        if installed is not None:
            limiter: RateLimiter = installed.limiter
            return limiter
    return _default


def check_rate_limit(identifier: str,
                     max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                     window: float = DEFAULT_WINDOW) -> bool:
    """Count an attempt against the current limiter."""
    return current_rate_limiter().allow(identifier, max_attempts, window)


def reset_rate_limit(identifier: str) -> None:
    """Clear ``identifier`` from the current limiter."""
    current_rate_limiter().reset(identifier)
