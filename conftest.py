import os

import pytest
from flask import Flask

from cms_auth import ratelimit, util
from cms_auth.ext import Auth

# Keep password hashing cheap under test.
os.environ.setdefault('BCRYPT_ROUNDS', '4')


@pytest.fixture()
def app():
    app = Flask('test_auth_app')
    app.testing = True
    app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
    app.config['JWT_SECRET'] = f'fake set in {__file__}'
    app.config['BCRYPT_ROUNDS'] = '4'
    Auth(app)
    with app.app_context():
        util.create_all()
        yield app
        util.drop_all()
    ratelimit._default.clear()
