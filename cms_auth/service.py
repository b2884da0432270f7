"""
Authentication, session verification and logout.

:class:`AuthenticationService` ties the password hasher, session store,
token issuer, rate limiter and activity log together. A successful login
yields two credentials:

- an opaque **session token**, checked against the session store on every
  use. Deleting the session revokes it immediately, so the session is the
  authority on whether a user is logged in.
- a **signed token**, which can be verified without touching any store but
  stays valid until it expires, even after logout.

Failures are deliberately vague. A wrong password and an unknown e-mail
address produce the same result, and a bad session token is simply "not
logged in". The one exception is a deactivated account, which is reported as
such. Infrastructure failures (:class:`.StoreUnavailable`) are not retried and
propagate to the caller, except during logout, which never fails visibly.
"""

from typing import Any, Optional

from flask import current_app

from . import domain, logging, passwords, tokens, util
from .activity import ActivityLog
from .exceptions import AccountDeactivated, ConfigurationError, \
    InvalidCredentials, NoSuchUser, RateLimitExceeded, StoreUnavailable
from .ratelimit import RateLimiter, DEFAULT_MAX_ATTEMPTS, DEFAULT_WINDOW
from .sessions import SessionStore
from .users import UserRepository, normalize_email

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid email or password'
ACCOUNT_DEACTIVATED = 'Account is deactivated'
TOO_MANY_ATTEMPTS = 'Too many login attempts. Please try again later.'


class AuthenticationService(object):
    """Orchestrates logins, session checks and logouts."""

    def __init__(self, users: UserRepository, sessions: SessionStore,
                 limiter: RateLimiter, activity: ActivityLog, secret: str,
                 token_lifetime: Optional[int] = None,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 window: float = DEFAULT_WINDOW) -> None:
        if not secret:
            raise ConfigurationError('A signing secret is required')
        self.users = users
        self.sessions = sessions
        self.limiter = limiter
        self.activity = activity
        self._secret = secret
        self._token_lifetime = token_lifetime
        self.max_attempts = max_attempts
        self.window = window

    @staticmethod
    def rate_limit_key(email: str, origin: domain.Origin) -> str:
        """
        Login attempts are counted per network address *and* account.

        Keying on the address alone would lock out everyone behind a shared
        NAT or proxy after a few mistakes by one of them.
        """
        return f'{origin.ip_address or "unknown"}|{normalize_email(email)}'

    def authenticate(self, email: str, password: str,
                     origin: Optional[domain.Origin] = None) \
            -> domain.LoginResult:
        """
        Validate e-mail/password and, if successful, log the user in.

        Parameters
        ----------
        email : str
        password : str
            Password (as entered). Never logged.
        origin : :class:`domain.Origin`
            Where the attempt came from.

        Returns
        -------
        :class:`domain.LoginResult`

        Raises
        ------
        :class:`StoreUnavailable`
            Raised if the identity or session store fails.

        """
        origin = origin or domain.Origin()
        key = self.rate_limit_key(email, origin)
        try:
            self._check_rate_limit(key)
            user = self._check_credentials(email, password, origin)
        except RateLimitExceeded:
            return domain.LoginResult(success=False,
                                      message=TOO_MANY_ATTEMPTS,
                                      rate_limited=True)
        except AccountDeactivated:
            return domain.LoginResult(success=False,
                                      message=ACCOUNT_DEACTIVATED)
        except InvalidCredentials:
            return domain.LoginResult(success=False,
                                      message=INVALID_CREDENTIALS)

        # Only failures count against the limit.
        self.limiter.reset(key)

        now = util.now()
        self.users.update_last_login(user.user_id, now)
        user = user._replace(last_login=now)
        session = self.sessions.create(user.user_id, origin=origin)
        signed_token = tokens.issue(user, self._secret, self._token_lifetime)
        self.activity.record(user.user_id, domain.Action.LOGIN_SUCCESS,
                             'User logged in successfully', origin,
                             {'session_id': session.session_id})
        logger.info('User %s logged in', user.user_id)
        return domain.LoginResult(
            success=True,
            user=user,
            session_token=session.token,
            signed_token=signed_token,
            expires_at=session.expires_at
        )

    def _check_rate_limit(self, key: str) -> None:
        if not self.limiter.allow(key, self.max_attempts, self.window):
            logger.info('Login attempt refused by rate limit')
            raise RateLimitExceeded('Too many login attempts')

    def _check_credentials(self, email: str, password: str,
                           origin: domain.Origin) -> domain.User:
        """
        Get the user whose credentials these are.

        Raises
        ------
        :class:`InvalidCredentials`
        :class:`AccountDeactivated`

        """
        try:
            user, password_hash = self.users.get_credentials(email)
        except NoSuchUser as e:
            # Cost the same as a wrong password.
            passwords.burn_time(password)
            self.activity.record(None, domain.Action.LOGIN_FAILED,
                                 'Login attempt for unknown account', origin,
                                 {'email': normalize_email(email)})
            raise InvalidCredentials('Invalid email or password') from e

        if not user.active:
            logger.debug('User %s is deactivated', user.user_id)
            self.activity.record(user.user_id, domain.Action.LOGIN_FAILED,
                                 'Login attempt for deactivated account',
                                 origin)
            raise AccountDeactivated('Account is deactivated')

        if not password_hash:
            passwords.burn_time(password)
            valid = False
        else:
            valid = passwords.check_password(password, password_hash)
        if not valid:
            self.activity.record(user.user_id, domain.Action.LOGIN_FAILED,
                                 'Invalid password attempt', origin)
            raise InvalidCredentials('Invalid email or password')
        return user

    def verify_session(self, session_token: str) -> Optional[domain.User]:
        """
        Get the user logged in with ``session_token``.

        Returns ``None`` if the session is unknown or expired, or its user no
        longer exists or has been deactivated. Expiry is not extended.
        """
        session = self.sessions.lookup(session_token)
        if session is None:
            return None
        try:
            user = self.users.get_user(session.user_id)
        except NoSuchUser:
            logger.debug('Session %s belongs to a missing user',
                         session.session_id)
            return None
        if not user.active:
            return None
        return user

    def verify_token(self, signed_token: str) \
            -> Optional[domain.TokenClaims]:
        """Check a signed token without consulting any store."""
        return tokens.verify(signed_token, self._secret)

    def logout(self, session_token: str, user_id: Optional[str] = None,
               origin: Optional[domain.Origin] = None) -> None:
        """
        Log out of the session identified by ``session_token``.

        Never raises; an unknown or already-invalidated session is fine.
        """
        try:
            if user_id is None:
                session = self.sessions.lookup(session_token)
                if session is not None:
                    user_id = session.user_id
            self.sessions.invalidate(session_token)
        except StoreUnavailable as e:
            logger.error('Logout failed: %s', e)
        if user_id is not None:
            self.activity.record(user_id, domain.Action.LOGOUT,
                                 'User logged out', origin)

    def purge_expired_sessions(self) -> int:
        """Remove expired sessions from the store."""
        return self.sessions.purge_expired()


def current_service(app: Optional[Any] = None) -> AuthenticationService:
    """Get the service installed on the (current) Flask application."""
    app = app or current_app
    try:
        service: AuthenticationService = app.extensions['cms_auth']
    except KeyError as e:
        raise ConfigurationError('cms_auth.ext.Auth is not installed') from e
    return service


def authenticate(email: str, password: str,
                 origin: Optional[domain.Origin] = None) \
        -> domain.LoginResult:
    """Authenticate using the service on the current application."""
    return current_service().authenticate(email, password, origin)


def verify_session(session_token: str) -> Optional[domain.User]:
    """Verify a session using the service on the current application."""
    return current_service().verify_session(session_token)


def verify_token(signed_token: str) -> Optional[domain.TokenClaims]:
    """Verify a signed token using the service on the current application."""
    return current_service().verify_token(signed_token)


def logout(session_token: str, user_id: Optional[str] = None,
           origin: Optional[domain.Origin] = None) -> None:
    """Log out using the service on the current application."""
    current_service().logout(session_token, user_id, origin)
