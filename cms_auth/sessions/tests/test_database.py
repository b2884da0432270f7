"""Tests for :mod:`cms_auth.sessions.database`."""

from unittest import TestCase, mock
from datetime import datetime, timedelta

from pytz import UTC

from ... import domain, util
from ...models import DBSession
from ...exceptions import SessionCreationFailed
from ...tests.util import temporary_db
from .. import store
from ..database import DatabaseSessionStore

START = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)
HOUR = 3600


class TestCreateSession(TestCase):
    """Tests for :meth:`DatabaseSessionStore.create`."""

    def setUp(self):
        self.store = DatabaseSessionStore(duration=HOUR)

    @mock.patch(f'{util.__name__}.now')
    def test_create(self, mock_now):
        """A new session is saved and handed back with its token."""
        mock_now.return_value = START
        origin = domain.Origin('10.0.0.1', 'Mozilla/5.0')
        with temporary_db() as db_session:
            session = self.store.create('42', origin=origin)

            self.assertEqual(session.user_id, '42')
            self.assertEqual(len(session.token), 96)
            self.assertEqual(session.created_at, START)
            self.assertEqual(session.expires_at, START + timedelta(hours=1))
            self.assertTrue(session.session_id)

            row = db_session.query(DBSession) \
                .filter(DBSession.token == session.token) \
                .one()
            self.assertEqual(row.user_id, '42')
            self.assertEqual(row.ip_address, '10.0.0.1')
            self.assertEqual(row.user_agent, 'Mozilla/5.0')
            self.assertEqual(util.from_db(row.expires_at),
                             session.expires_at)

    @mock.patch(f'{util.__name__}.now')
    def test_duration_override(self, mock_now):
        """The duration can be set per session."""
        mock_now.return_value = START
        with temporary_db():
            session = self.store.create('42', duration=60)
        self.assertEqual(session.expires_at, START + timedelta(seconds=60))

    @mock.patch(f'{util.__name__}.now')
    def test_zero_duration(self, mock_now):
        """A session created with no duration is never active."""
        mock_now.return_value = START
        with temporary_db():
            session = self.store.create('42', duration=0)
            self.assertEqual(session.expires_at, START)
            self.assertIsNone(self.store.lookup(session.token))

    def test_tokens_are_unique(self):
        """Every session gets its own token."""
        with temporary_db():
            created = [self.store.create('42') for _ in range(20)]
        self.assertEqual(len({session.token for session in created}), 20)
        self.assertEqual(len({session.session_id for session in created}),
                         20)

    @mock.patch(f'{store.__name__}.generate_session_token')
    def test_collision_is_retried(self, mock_generate):
        """If a token is already taken, another one is drawn."""
        mock_generate.side_effect = ['a' * 96, 'a' * 96, 'b' * 96]
        with temporary_db():
            first = self.store.create('42')
            second = self.store.create('43')
        self.assertEqual(first.token, 'a' * 96)
        self.assertEqual(second.token, 'b' * 96)
        self.assertEqual(mock_generate.call_count, 3)

    @mock.patch(f'{store.__name__}.generate_session_token')
    def test_collision_gives_up(self, mock_generate):
        """Repeated collisions are reported as a creation failure."""
        mock_generate.return_value = 'a' * 96
        with temporary_db():
            self.store.create('42')
            with self.assertRaises(SessionCreationFailed):
                self.store.create('43')


class TestLookupSession(TestCase):
    """Tests for :meth:`DatabaseSessionStore.lookup`."""

    def setUp(self):
        self.store = DatabaseSessionStore(duration=HOUR)

    @mock.patch(f'{util.__name__}.now')
    def test_lookup(self, mock_now):
        """An active session is found by its token."""
        mock_now.return_value = START
        with temporary_db():
            created = self.store.create('42')
            found = self.store.lookup(created.token)
        self.assertEqual(found, created)

    @mock.patch(f'{util.__name__}.now')
    def test_expiry_boundary(self, mock_now):
        """A session is valid until its expiry, and not after."""
        mock_now.return_value = START
        with temporary_db():
            created = self.store.create('42')

            mock_now.return_value = created.expires_at - timedelta(seconds=1)
            self.assertIsNotNone(self.store.lookup(created.token))

            mock_now.return_value = created.expires_at + timedelta(seconds=1)
            self.assertIsNone(self.store.lookup(created.token))

    @mock.patch(f'{util.__name__}.now')
    def test_lookup_does_not_extend(self, mock_now):
        """Looking a session up does not change when it expires."""
        mock_now.return_value = START
        with temporary_db():
            created = self.store.create('42')
            mock_now.return_value = START + timedelta(minutes=30)
            found = self.store.lookup(created.token)
        self.assertEqual(found.expires_at, created.expires_at)
        self.assertEqual(found.last_accessed, created.last_accessed)

    def test_unknown(self):
        """Tokens that were never issued are not found."""
        with temporary_db():
            self.assertIsNone(self.store.lookup('nope'))
            self.assertIsNone(self.store.lookup(''))
            self.assertIsNone(self.store.lookup(None))


class TestInvalidateSession(TestCase):
    """Tests for :meth:`DatabaseSessionStore.invalidate`."""

    def setUp(self):
        self.store = DatabaseSessionStore(duration=HOUR)

    def test_invalidate(self):
        """An invalidated session can no longer be looked up."""
        with temporary_db():
            created = self.store.create('42')
            other = self.store.create('42')
            self.store.invalidate(created.token)
            self.assertIsNone(self.store.lookup(created.token))
            self.assertIsNotNone(self.store.lookup(other.token),
                                 'Other sessions of the user are untouched')

    def test_idempotent(self):
        """Invalidating twice, or an unknown token, is not an error."""
        with temporary_db():
            created = self.store.create('42')
            self.store.invalidate(created.token)
            self.store.invalidate(created.token)
            self.store.invalidate('nope')


class TestPurgeExpired(TestCase):
    """Tests for :meth:`DatabaseSessionStore.purge_expired`."""

    @mock.patch(f'{util.__name__}.now')
    def test_purge(self, mock_now):
        """Only expired sessions are removed."""
        session_store = DatabaseSessionStore(duration=HOUR)
        mock_now.return_value = START
        with temporary_db() as db_session:
            short = session_store.create('42', duration=60)
            long = session_store.create('43')

            mock_now.return_value = START + timedelta(minutes=5)
            self.assertEqual(session_store.purge_expired(), 1)
            self.assertEqual(session_store.purge_expired(), 0)

            tokens = [row.token for row in db_session.query(DBSession).all()]
            self.assertEqual(tokens, [long.token])
            self.assertNotIn(short.token, tokens)
