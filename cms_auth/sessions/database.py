"""Session store backed by the SQL database."""

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import domain, logging, util
from ..models import DBSession
from ..exceptions import SessionCreationFailed, SessionDeletionFailed, \
    SessionTokenCollision, StoreUnavailable
from .store import SessionStore

logger = logging.getLogger(__name__)


class DatabaseSessionStore(SessionStore):
    """
    Keeps sessions in the ``user_sessions`` table.

    Must be used within a Flask application context, with the database
    attached (see :func:`cms_auth.util.init_app`). Expired rows stay in the
    table until :meth:`purge_expired` is called, but are never returned.
    """

    def _save(self, session: domain.Session) -> domain.Session:
        db_session = DBSession(
            token=session.token,
            user_id=session.user_id,
            expires_at=util.to_db(session.expires_at),
            created_at=util.to_db(session.created_at),
            last_accessed=util.to_db(session.last_accessed),
            ip_address=session.origin.ip_address,
            user_agent=session.origin.user_agent
        )
        try:
            with util.transaction() as db:
                db.add(db_session)
                db.commit()
                session_id = str(db_session.session_id)
        except IntegrityError as e:
            raise SessionTokenCollision('Session token already in use') from e
        except SQLAlchemyError as e:
            raise SessionCreationFailed(
                f'Failed to create: {util.describe(e)}'
            ) from e
        return session._replace(session_id=session_id)

    def lookup(self, token: str) -> Optional[domain.Session]:
        """Get an active session by token."""
        if not token:
            return None
        try:
            with util.transaction() as db:
                db_session: Optional[DBSession] = db.query(DBSession) \
                    .filter(DBSession.token == token) \
                    .filter(DBSession.expires_at > util.to_db(util.now())) \
                    .first()
                if db_session is None:
                    return None
                return _to_domain(db_session)
        except SQLAlchemyError as e:
            raise StoreUnavailable(
                f'Failed to load session: {util.describe(e)}'
            ) from e

    def invalidate(self, token: str) -> None:
        """Delete a session by token."""
        if not token:
            return
        try:
            with util.transaction() as db:
                deleted = db.query(DBSession) \
                    .filter(DBSession.token == token) \
                    .delete(synchronize_session=False)
                db.commit()
        except SQLAlchemyError as e:
            raise SessionDeletionFailed(
                f'Failed to delete: {util.describe(e)}'
            ) from e
        if deleted:
            logger.debug('Invalidated a session')

    def purge_expired(self) -> int:
        """Delete every session whose expiry has passed."""
        cutoff = util.to_db(util.now())
        try:
            with util.transaction() as db:
                purged: int = db.query(DBSession) \
                    .filter(DBSession.expires_at < cutoff) \
                    .delete(synchronize_session=False)
                db.commit()
        except SQLAlchemyError as e:
            raise SessionDeletionFailed(
                f'Failed to purge: {util.describe(e)}'
            ) from e
        logger.info('Purged %i expired sessions', purged)
        return purged


def _to_domain(db_session: DBSession) -> domain.Session:
    return domain.Session(
        session_id=str(db_session.session_id),
        user_id=db_session.user_id,
        token=db_session.token,
        expires_at=util.from_db(db_session.expires_at),
        created_at=util.from_db(db_session.created_at),
        last_accessed=util.from_db(db_session.last_accessed),
        origin=domain.Origin(ip_address=db_session.ip_address,
                             user_agent=db_session.user_agent)
    )
