"""
Script for creating a new user. For dev/test purposes only.

.. warning: DO NOT USE THIS ON A PRODUCTION DATABASE.

User management proper lives outside the auth core; this script only exists
so that there is someone to log in as.

.. code-block:: bash

   $ SQLALCHEMY_DATABASE_URI=sqlite:///cms_auth.db python create_user.py
   Email address: joe@bloggs.com
   Username: jbloggs
   Password:
   Repeat for confirmation:
   Role (admin, writer, user) [user]: writer
   Created user 1

"""

import os

import click
from flask import Flask

from cms_auth import domain, passwords, util
from cms_auth.ext import Auth
from cms_auth.exceptions import WeakInputError
from cms_auth.models import DBUser
from cms_auth.users import normalize_email


def create_app() -> Flask:
    """Make a bare application with the auth core installed."""
    app = Flask('cms_auth')
    app.config.update({
        key: value for key, value in os.environ.items()
        if key.startswith(('SQLALCHEMY_', 'BCRYPT_', 'PASSWORD_', 'JWT_'))
    })
    Auth(app)
    return app


@click.command()
@click.option('--email', prompt='Email address')
@click.option('--username', prompt='Username', default='')
@click.option('--password', prompt=True, hide_input=True,
              confirmation_prompt=True)
@click.option('--role', prompt='Role (admin, writer, user)', default='user',
              type=click.Choice([role.value for role in domain.Role]))
def create_user(email: str, username: str, password: str,
                role: str = 'user') -> None:
    """Create a new user. For dev/test purposes only."""
    if not passwords.is_valid_email(email):
        raise click.BadParameter('Not an e-mail address', param_hint='email')
    problems = passwords.validate_password_strength(password)
    if problems:
        raise click.BadParameter('; '.join(problems), param_hint='password')

    app = create_app()
    with app.app_context():
        util.create_all()
        try:
            password_hash = passwords.hash_password(password)
        except WeakInputError as e:
            raise click.BadParameter(str(e), param_hint='password') from e
        with util.transaction() as session:
            db_user = DBUser(
                email=normalize_email(email),
                username=username,
                password_hash=password_hash,
                role=role,
                is_active=True,
                is_verified=True
            )
            session.add(db_user)
            session.commit()
            click.echo(f'Created user {db_user.user_id}')


if __name__ == '__main__':
    create_user()
