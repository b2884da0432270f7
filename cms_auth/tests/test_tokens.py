"""Tests for :mod:`cms_auth.tokens`."""

from unittest import TestCase, mock
from datetime import datetime, timedelta

import jwt
from pytz import UTC

from .. import domain, tokens, util
from ..exceptions import ConfigurationError, InvalidToken

SECRET = 'foosecret'


class TestIssueAndVerify(TestCase):
    """Tokens issued here verify with the same secret."""

    def setUp(self):
        self.user = domain.User(user_id='42', email='a@x.com',
                                role=domain.Role.CONTRIBUTOR)

    def test_zero_lifetime(self):
        """A lifetime of zero is taken at its word."""
        token = tokens.issue(self.user, SECRET, lifetime=0)
        payload = jwt.decode(token, options={'verify_signature': False})
        self.assertEqual(payload['exp'], payload['iat'])
        self.assertIsNone(tokens.verify(token, SECRET))

    def test_claims(self):
        """The claims describe the user and the token's lifetime."""
        token = tokens.issue(self.user, SECRET, lifetime=3600)
        claims = tokens.verify(token, SECRET)
        self.assertIsNotNone(claims)
        self.assertEqual(claims.user_id, '42')
        self.assertEqual(claims.email, 'a@x.com')
        self.assertIs(claims.role, domain.Role.CONTRIBUTOR)
        self.assertEqual(claims.expires_at - claims.issued_at,
                         timedelta(seconds=3600))

    def test_is_not_opaque(self):
        """The payload is readable without the secret, so keep it small."""
        token = tokens.issue(self.user, SECRET, lifetime=3600)
        payload = jwt.decode(token, options={'verify_signature': False})
        self.assertEqual(set(payload), set(tokens.REQUIRED_CLAIMS))

    def test_wrong_secret(self):
        """A token signed with another secret is rejected."""
        token = tokens.issue(self.user, SECRET, lifetime=3600)
        self.assertIsNone(tokens.verify(token, 'barsecret'))

    def test_tampered(self):
        """Changing any part of the token invalidates it."""
        token = tokens.issue(self.user, SECRET, lifetime=3600)
        header, payload, signature = token.split('.')
        forged = jwt.encode({'sub': '1', 'email': 'b@x.com', 'role': 'admin',
                             'iat': 0, 'exp': 9999999999}, 'other')
        forged_payload = forged.split('.')[1]
        self.assertIsNone(
            tokens.verify(f'{header}.{forged_payload}.{signature}', SECRET)
        )

    def test_expired(self):
        """An expired token is rejected."""
        eight_days_ago = datetime.now(tz=UTC) - timedelta(days=8)
        with mock.patch(f'{util.__name__}.now') as mock_now:
            mock_now.return_value = eight_days_ago
            token = tokens.issue(self.user, SECRET, lifetime=7 * 86_400)
        self.assertIsNone(tokens.verify(token, SECRET))

    def test_garbage(self):
        """Things that aren't tokens are rejected without raising."""
        for token in ['', 'foo', 'a.b.c', None]:
            self.assertIsNone(tokens.verify(token, SECRET))

    def test_missing_claims(self):
        """A correctly signed token without all the claims is rejected."""
        token = jwt.encode({'sub': '42', 'exp': 9999999999}, SECRET,
                           algorithm='HS256')
        self.assertIsNone(tokens.verify(token, SECRET))

    def test_unknown_role(self):
        """A correctly signed token with a bogus role is rejected."""
        now = int(datetime.now(tz=UTC).timestamp())
        token = jwt.encode({'sub': '42', 'email': 'a@x.com', 'role': 'root',
                            'iat': now, 'exp': now + 60}, SECRET,
                           algorithm='HS256')
        self.assertIsNone(tokens.verify(token, SECRET))

    def test_no_secret(self):
        """Refuse to sign with an empty secret."""
        with self.assertRaises(ConfigurationError):
            tokens.issue(self.user, '', lifetime=3600)


class TestGenerateSecureToken(TestCase):
    """Tests for :func:`tokens.generate_secure_token`."""

    def test_length(self):
        self.assertEqual(len(tokens.generate_secure_token()), 64)
        self.assertEqual(len(tokens.generate_secure_token(16)), 32)

    def test_unique(self):
        generated = {tokens.generate_secure_token() for _ in range(100)}
        self.assertEqual(len(generated), 100)


class TestDecode(TestCase):
    """Tests for :func:`tokens.decode`."""

    def test_raises(self):
        """Unlike :func:`tokens.verify`, decoding says when it fails."""
        with self.assertRaises(InvalidToken):
            tokens.decode('foo', SECRET)

    def test_decode(self):
        user = domain.User(user_id='42', email='a@x.com')
        token = tokens.issue(user, SECRET, lifetime=60)
        self.assertIs(tokens.decode(token, SECRET).role, domain.Role.STANDARD)
