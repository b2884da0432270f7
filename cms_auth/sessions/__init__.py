"""
Server-tracked login sessions.

A session is keyed by an opaque, random token that is handed to the client.
Unlike a signed token (see :mod:`cms_auth.tokens`), a session can be revoked
at any moment by deleting it, so it is the authority on whether a user is
still logged in.

Two backends are provided: :class:`.DatabaseSessionStore` keeps sessions in
the SQL database, and :class:`.RedisSessionStore` keeps them in Redis, where
expiry is handled by the store itself. See :mod:`.store`.
"""

from typing import Any, Optional

from .. import config
from ..globals import get_application_config
from ..exceptions import ConfigurationError
from .store import SessionStore, RedisSessionStore, generate_session_token
from .database import DatabaseSessionStore


def get_session_store(app: Optional[Any] = None) -> SessionStore:
    """Build the session store selected by ``SESSION_BACKEND``."""
    cfg = get_application_config(app)
    backend = cfg.get('SESSION_BACKEND', config.SESSION_BACKEND)
    duration = int(cfg.get('SESSION_DURATION', config.SESSION_DURATION))
    if backend == 'database':
        return DatabaseSessionStore(duration=duration)
    if backend == 'redis':
        return RedisSessionStore(
            host=cfg.get('REDIS_HOST', config.REDIS_HOST),
            port=int(cfg.get('REDIS_PORT', config.REDIS_PORT)),
            db=int(cfg.get('REDIS_DATABASE', config.REDIS_DATABASE)),
            duration=duration,
            prefix=cfg.get('REDIS_PREFIX', config.REDIS_PREFIX) + 'session:'
        )
    raise ConfigurationError(f'Unknown session backend: {backend}')
