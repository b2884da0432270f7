"""Flask integration: wires the auth core from application configuration."""

from typing import Optional

import click
from flask import Flask
from flask.cli import AppGroup

from . import config, logging, util
from .activity import DatabaseActivityLog
from .ratelimit import get_rate_limiter
from .service import AuthenticationService, current_service
from .sessions import get_session_store
from .users import DatabaseUserRepository

logger = logging.getLogger(__name__)

cli = AppGroup('cms-auth', help='Maintenance for the auth core.')


@cli.command('purge-sessions')
def purge_sessions() -> None:
    """Remove expired sessions. Run this on a schedule."""
    purged = current_service().purge_expired_sessions()
    click.echo(f'Purged {purged} expired sessions')


@cli.command('create-db')
def create_db() -> None:
    """Create the session, activity and user tables."""
    util.create_all()
    click.echo('Created tables')


class Auth(object):
    """
    Installs the auth core on a Flask application.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from cms_auth.ext import Auth


       def create_web_app() -> Flask:
           app = Flask('cms')
           app.config.from_pyfile('config.py')
           Auth(app)
           return app

    Afterwards, :func:`cms_auth.service.authenticate` and friends use the
    service built here.
    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        """
        Initialize ``app`` with the auth core.

        Parameters
        ----------
        app : :class:`Flask`

        """
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Set configuration defaults and attach the service to ``app``.

        Parameters
        ----------
        app : :class:`Flask`

        """
        self.app = app
        for key, value in config.DEFAULTS.items():
            app.config.setdefault(key, value)
        if app.config['JWT_SECRET'] == 'foosecret' and not app.testing:
            logger.warning('JWT_SECRET is not set; using an insecure default')

        util.init_app(app)
        app.extensions['cms_auth'] = self.build_service(app)
        app.cli.add_command(cli)

    @staticmethod
    def build_service(app: Flask) -> AuthenticationService:
        """Build an :class:`.AuthenticationService` from the app config."""
        cfg = app.config
        return AuthenticationService(
            users=DatabaseUserRepository(),
            sessions=get_session_store(app),
            limiter=get_rate_limiter(app),
            activity=DatabaseActivityLog(),
            secret=cfg['JWT_SECRET'],
            token_lifetime=int(cfg['TOKEN_LIFETIME']),
            max_attempts=int(cfg['RATE_LIMIT_MAX_ATTEMPTS']),
            window=float(cfg['RATE_LIMIT_WINDOW'])
        )

    @property
    def service(self) -> AuthenticationService:
        """The service attached to the application."""
        return current_service(self.app)
