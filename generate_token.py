"""
Helper script for generating a signed token.

Be sure that you are using the same secret when running this script as when you
run the app. Set ``JWT_SECRET=somesecret`` in your environment to ensure that
the same secret is always used.


.. code-block:: bash

   $ JWT_SECRET=foosecret python generate_token.py
   Numeric user ID: 4
   Email address: joe@bloggs.com
   Role (admin, writer, user) [user]: writer
   Lifetime in seconds [36000]:

   eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9.eyJzdWIiOiI0IiwiZW1haWwiOiJqb2VAYmxvZ2dzLmNvbSIs...


Use the token in requests to endpoints that accept signed tokens. It is
checked with :func:`cms_auth.service.verify_token`, which does not consult the
session store, so it works without logging in.
"""

import os

import click

from cms_auth import domain, tokens


@click.command()
@click.option('--user_id', prompt='Numeric user ID')
@click.option('--email', prompt='Email address')
@click.option('--role', prompt='Role (admin, writer, user)', default='user',
              type=click.Choice([role.value for role in domain.Role]))
@click.option('--lifetime', prompt='Lifetime in seconds', default=36000)
def generate_token(user_id: str, email: str, role: str = 'user',
                   lifetime: int = 36000) -> None:
    """Generate a signed token for dev/testing purposes."""
    user = domain.User(user_id=user_id, email=email,
                       role=domain.Role.coerce(role))
    token = tokens.issue(user, os.environ['JWT_SECRET'], int(lifetime))
    click.echo(token)


if __name__ == '__main__':
    generate_token()
