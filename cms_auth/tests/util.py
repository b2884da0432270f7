"""Testing helpers."""

from contextlib import contextmanager
from typing import Optional

from flask import Flask

from .. import passwords, util
from ..models import DBUser


@contextmanager
def temporary_db(database_url: str = 'sqlite:///:memory:',
                 create: bool = True, drop: bool = True):
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['BCRYPT_ROUNDS'] = '4'
    with app.app_context():
        util.init_app(app)
        if create:
            util.create_all()
        try:
            with util.transaction():
                yield util.current_session()
        finally:
            if drop:
                util.drop_all()


def create_user(email: str = 'a@x.com', password: Optional[str] = 'c0rrect',
                role: str = 'user', active: bool = True,
                username: str = 'someone') -> str:
    """Add a row to the users table, and return the new user id."""
    with util.transaction() as session:
        db_user = DBUser(
            email=email,
            username=username,
            password_hash=(passwords.hash_password(password, rounds=4)
                           if password else None),
            role=role,
            is_active=active,
            is_verified=True
        )
        session.add(db_user)
        session.commit()
        return str(db_user.user_id)
