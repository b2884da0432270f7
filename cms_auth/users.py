"""
Read access to identities owned by the user-management collaborator.

The auth core never creates, edits or deletes identities. It looks them up by
e-mail or id, reads the password hash for credential checks, and stamps the
time of the last successful login.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from . import domain, logging, util
from .models import DBUser
from .exceptions import NoSuchUser, StoreUnavailable

logger = logging.getLogger(__name__)

Credentials = Tuple[domain.User, Optional[str]]


class UserRepository(ABC):
    """Interface to the identity store."""

    @abstractmethod
    def get_credentials(self, email: str) -> Credentials:
        """
        Get a user and their password hash by e-mail address.

        Raises
        ------
        :class:`NoSuchUser`

        """

    @abstractmethod
    def get_user(self, user_id: str) -> domain.User:
        """
        Get a user by id.

        Raises
        ------
        :class:`NoSuchUser`

        """

    @abstractmethod
    def update_last_login(self, user_id: str, when: datetime) -> None:
        """Record a successful login."""


def normalize_email(email: Optional[str]) -> str:
    """E-mail addresses are matched case-insensitively."""
    return (email or '').strip().lower()


class DatabaseUserRepository(UserRepository):
    """Identities in the ``users`` table."""

    def get_credentials(self, email: str) -> Credentials:
        try:
            with util.transaction() as db:
                db_user: Optional[DBUser] = db.query(DBUser) \
                    .filter(DBUser.email == normalize_email(email)) \
                    .first()
                if db_user is not None:
                    return _to_domain(db_user), db_user.password_hash
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f'Failed to load user: {util.describe(e)}'
            ) from e
        raise NoSuchUser('User does not exist')

    def get_user(self, user_id: str) -> domain.User:
        try:
            pk = int(user_id)
        except (TypeError, ValueError) as e:
            raise NoSuchUser('User does not exist') from e
        try:
            with util.transaction() as db:
                db_user: Optional[DBUser] = db.query(DBUser) \
                    .filter(DBUser.user_id == pk) \
                    .first()
                if db_user is not None:
                    return _to_domain(db_user)
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f'Failed to load user: {util.describe(e)}'
            ) from e
        raise NoSuchUser('User does not exist')

    def update_last_login(self, user_id: str, when: datetime) -> None:
        try:
            with util.transaction() as db:
                db.query(DBUser) \
                    .filter(DBUser.user_id == int(user_id)) \
                    .update({DBUser.last_login: util.to_db(when)},
                            synchronize_session=False)
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f'Failed to update user: {util.describe(e)}'
            ) from e


def _to_domain(db_user: DBUser) -> domain.User:
    return domain.User(
        user_id=str(db_user.user_id),
        email=db_user.email,
        username=db_user.username,
        role=domain.Role.coerce(db_user.role),
        active=bool(db_user.is_active),
        verified=bool(db_user.is_verified),
        last_login=util.from_db(db_user.last_login)
    )
