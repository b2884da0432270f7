"""Default configuration for the CMS auth core."""

import os

JWT_SECRET = os.environ.get('JWT_SECRET', 'foosecret')
"""Secret used to sign and verify tokens. Override this in production!"""

TOKEN_LIFETIME = os.environ.get('TOKEN_LIFETIME', '604800')
"""Lifetime of a signed token, in seconds (7 days)."""

SESSION_DURATION = os.environ.get('SESSION_DURATION', '604800')
"""Absolute lifetime of a login session, in seconds (7 days)."""

SESSION_BACKEND = os.environ.get('SESSION_BACKEND', 'database')
"""Where sessions are kept: ``database`` or ``redis``."""

RATE_LIMIT_BACKEND = os.environ.get('RATE_LIMIT_BACKEND', 'memory')
"""
Where attempt counters are kept: ``memory`` or ``redis``.

Counters kept in memory are local to the process, and are not shared between
instances of the application.
"""

RATE_LIMIT_MAX_ATTEMPTS = os.environ.get('RATE_LIMIT_MAX_ATTEMPTS', '5')
RATE_LIMIT_WINDOW = os.environ.get('RATE_LIMIT_WINDOW', '900')
"""Rate-limit window for login attempts, in seconds (15 minutes)."""

PASSWORD_MIN_LENGTH = os.environ.get('PASSWORD_MIN_LENGTH', '6')
BCRYPT_ROUNDS = os.environ.get('BCRYPT_ROUNDS', '12')
"""Work factor for password hashing."""

REDIS_HOST = os.environ.get('REDIS_HOST', 'localhost')
REDIS_PORT = os.environ.get('REDIS_PORT', '6379')
REDIS_DATABASE = os.environ.get('REDIS_DATABASE', '0')
REDIS_PREFIX = os.environ.get('REDIS_PREFIX', 'cms-auth:')

SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite:///cms_auth.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

DEFAULTS = {
    'JWT_SECRET': JWT_SECRET,
    'TOKEN_LIFETIME': TOKEN_LIFETIME,
    'SESSION_DURATION': SESSION_DURATION,
    'SESSION_BACKEND': SESSION_BACKEND,
    'RATE_LIMIT_BACKEND': RATE_LIMIT_BACKEND,
    'RATE_LIMIT_MAX_ATTEMPTS': RATE_LIMIT_MAX_ATTEMPTS,
    'RATE_LIMIT_WINDOW': RATE_LIMIT_WINDOW,
    'PASSWORD_MIN_LENGTH': PASSWORD_MIN_LENGTH,
    'BCRYPT_ROUNDS': BCRYPT_ROUNDS,
    'REDIS_HOST': REDIS_HOST,
    'REDIS_PORT': REDIS_PORT,
    'REDIS_DATABASE': REDIS_DATABASE,
    'REDIS_PREFIX': REDIS_PREFIX,
    'SQLALCHEMY_DATABASE_URI': SQLALCHEMY_DATABASE_URI,
    'SQLALCHEMY_TRACK_MODIFICATIONS': SQLALCHEMY_TRACK_MODIFICATIONS,
    'LOG_LEVEL': LOG_LEVEL,
}
"""Used by :meth:`cms_auth.ext.Auth.init_app` to fill in missing keys."""
