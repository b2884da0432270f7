"""
Signed, self-contained bearer tokens.

A token is a JWT (HS256) carrying the user's id, e-mail and role, plus the
time it was issued and the time it expires. The expiry is always computed
here from the configured lifetime. Verification needs nothing but the
secret, so it is cheap and has no side effects; on the other hand a token
cannot be revoked before it expires. Revocation is the job of the session
(see :mod:`cms_auth.sessions`).
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

import jwt
from pytz import UTC

from . import config, domain, logging, util
from .exceptions import ConfigurationError, InvalidToken
from .globals import get_application_config

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'
REQUIRED_CLAIMS = ['sub', 'email', 'role', 'iat', 'exp']


def _lifetime() -> int:
    cfg = get_application_config()
    return int(cfg.get('TOKEN_LIFETIME', config.TOKEN_LIFETIME))


def issue(user: domain.User, secret: str,
          lifetime: Optional[int] = None) -> str:
    """
    Issue a signed token for ``user``.

    Parameters
    ----------
    user : :class:`domain.User`
    secret : str
        Server-held signing secret.
    lifetime : int
        Seconds until the token expires. Defaults to ``TOKEN_LIFETIME``.

    Returns
    -------
    str
        A compact, base64url-safe token.

    """
    if not secret:
        raise ConfigurationError('A signing secret is required')
    issued_at = util.now()
    if lifetime is None:
        lifetime = _lifetime()
    expires_at = issued_at + timedelta(seconds=lifetime)
    claims = {
        'sub': str(user.user_id),
        'email': user.email,
        'role': domain.Role.coerce(user.role).value,
        'iat': int(issued_at.timestamp()),
        'exp': int(expires_at.timestamp())
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def decode(token: str, secret: str) -> domain.TokenClaims:
    """
    Decode a signed token to access its claims.

    Raises
    ------
    :class:`InvalidToken`
        Raised if the token is malformed, its signature does not match, it
        has expired, or its claims are incomplete.

    """
    try:
        data = jwt.decode(token, secret, algorithms=[ALGORITHM],
                          options={'require': REQUIRED_CLAIMS})
        return domain.TokenClaims(
            user_id=str(data['sub']),
            email=data['email'],
            role=domain.Role.coerce(data['role']),
            issued_at=datetime.fromtimestamp(data['iat'], tz=UTC),
            expires_at=datetime.fromtimestamp(data['exp'], tz=UTC)
        )
    except (jwt.exceptions.InvalidTokenError, KeyError, TypeError,
            ValueError) as e:
        raise InvalidToken(f'Not a valid token: {type(e).__name__}') from e


def verify(token: str, secret: str) -> Optional[domain.TokenClaims]:
    """
    Verify a signed token and get its claims.

    Returns ``None`` for any token :func:`decode` rejects. Callers cannot tell
    the reasons apart.
    """
    try:
        return decode(token, secret)
    except InvalidToken as e:
        logger.debug('Rejected signed token: %s', e)
        return None


def generate_secure_token(nbytes: int = 32) -> str:
    """
    Generate a random single-use token, e.g. for a password reset link.

    These carry no claims; whoever issues one must store it.
    """
    return secrets.token_hex(nbytes)
