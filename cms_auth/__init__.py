"""
Authentication and session core for the CMS.

This package verifies credentials, hashes passwords, issues signed tokens,
manages server-side sessions, limits login attempts, keeps an audit trail of
logins and logouts, and decides what each role may do. Everything else about
users (registration, profiles, e-mail) lives elsewhere; this package only
reads identities.

Quick start
-----------

1. Install this package into your virtual environment.
2. Install :class:`cms_auth.ext.Auth` onto your application.
3. Call :func:`cms_auth.service.authenticate`,
   :func:`cms_auth.service.verify_session` and :func:`cms_auth.service.logout`
   from your request handlers.

.. code-block:: python

   # yourapp/factory.py
   from flask import Flask
   from cms_auth.ext import Auth


   def create_web_app() -> Flask:
       app = Flask('cms')
       app.config.from_pyfile('config.py')
       Auth(app)    # <- Install the auth core.
       return app

The login handler then does something like:

.. code-block:: python

   from cms_auth import service
   from cms_auth.domain import Origin

   result = service.authenticate(email, password,
                                 Origin(request.remote_addr,
                                        request.user_agent.string))
   if not result.success:
       return render_template('login.html', error=result.message), 401

Run ``flask cms-auth purge-sessions`` periodically to remove expired
sessions from the database.
"""

from .domain import Role, Action, Origin, User, Session, TokenClaims, \
    LoginResult
