"""
Password hashing and verification.

Hashes are produced with bcrypt, which embeds a fresh salt and the work
factor in every digest. Comparison is done by :func:`bcrypt.checkpw`, which
runs in constant time with respect to where a mismatch occurs.
"""

import re
from typing import List, Optional

import bcrypt

from . import config, logging
from .exceptions import WeakInputError
from .globals import get_application_config

logger = logging.getLogger(__name__)

MAX_BYTES = 72
"""bcrypt only considers this many bytes of input."""

EMAIL = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

_DUMMY_HASH: Optional[bytes] = None


def _min_length() -> int:
    cfg = get_application_config()
    return int(cfg.get('PASSWORD_MIN_LENGTH', config.PASSWORD_MIN_LENGTH))


def _rounds() -> int:
    cfg = get_application_config()
    return int(cfg.get('BCRYPT_ROUNDS', config.BCRYPT_ROUNDS))


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Generate a secure hash of a password.

    Parameters
    ----------
    password : str
    rounds : int
        bcrypt work factor. Defaults to ``BCRYPT_ROUNDS``.

    Returns
    -------
    str

    Raises
    ------
    :class:`WeakInputError`
        Raised before any hashing work if the password is too short, or too
        long for bcrypt to consider in full.

    """
    if not password or len(password) < _min_length():
        raise WeakInputError(
            f'Password must be at least {_min_length()} characters long'
        )
    encoded = password.encode('utf-8')
    if len(encoded) > MAX_BYTES:
        raise WeakInputError(f'Password must be at most {MAX_BYTES} bytes')
    salt = bcrypt.gensalt(rounds=rounds or _rounds())
    return bcrypt.hashpw(encoded, salt).decode('ascii')


def check_password(password: str, encrypted: str) -> bool:
    """
    Check a password against an encrypted hash.

    Returns ``False`` for a wrong password, and also for input that could
    not have produced ``encrypted`` (a malformed hash, an over-long
    password).
    """
    if not password or not encrypted:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'),
                              encrypted.encode('ascii'))
    except ValueError:
        logger.debug('Password or hash rejected by bcrypt')
        return False


def burn_time(password: str) -> None:
    """
    Spend as long as a real password check would, and learn nothing.

    Used when there is no account to check against, so that the response
    time does not reveal whether an e-mail address is registered.
    """
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = bcrypt.hashpw(b'not-a-real-password',
                                    bcrypt.gensalt(rounds=_rounds()))
    check_password(password or 'x', _DUMMY_HASH.decode('ascii'))


def validate_password_strength(password: str) -> List[str]:
    """
    Check a candidate password against the password policy.

    Returns
    -------
    list
        Human-readable problems with the password. Empty if it is acceptable.

    """
    if not password:
        return ['Password is required']
    errors = []
    min_length = _min_length()
    if len(password) < min_length:
        errors.append(
            f'Password must be at least {min_length} characters long'
        )
    if not re.search(r'[A-Za-z]', password):
        errors.append('Password must contain at least one letter')
    if not re.search(r'\d', password):
        errors.append('Password must contain at least one number')
    if len(password.encode('utf-8')) > MAX_BYTES:
        errors.append(f'Password must be at most {MAX_BYTES} bytes long')
    return errors


def is_valid_email(email: str) -> bool:
    """Check that ``email`` at least looks like an e-mail address."""
    return bool(email and EMAIL.match(email))
