import asyncio
import unittest
from roomchat.server.credentials import CredentialService
from roomchat.server.models import Identity, SessionState
from roomchat.server.sessions import SessionRegistry


class TestSessionRegistry(unittest.TestCase):
    def setUp(self):
        self.creds = CredentialService('test-secret-key-long-enough-for-hs256!', bcrypt_rounds=4)
        alice = self.creds.register_identity('alice', 'alice@example.com', 'secret1')
        self.token = self.creds.issue_credential(alice)
        self.registry = SessionRegistry(self.creds)
        self.registry.open('c1')

    def authenticate(self, token, connection_id='c1'):
        return asyncio.run(self.registry.authenticate(connection_id, token))

    def test_new_connection_is_unauthenticated(self):
        self.assertEqual(self.registry.get('c1').state, SessionState.UNAUTHENTICATED)
        self.assertEqual(self.registry.authenticated_count(), 0)

    def test_missing_token_gives_guest(self):
        result = self.authenticate(None)
        self.assertEqual(result.session.state, SessionState.GUEST)
        self.assertFalse(result.onboarded)

    def test_invalid_token_gives_guest(self):
        result = self.authenticate('not-a-token')
        self.assertTrue(result.session.is_guest)
        self.assertTrue(self.registry.get('c1').is_guest)

    def test_unknown_identity_gives_guest(self):
        ghost = Identity(username='ghost', email='ghost@example.com', password_hash='x')
        result = self.authenticate(self.creds.issue_credential(ghost))
        self.assertTrue(result.session.is_guest)

    def test_valid_token_authenticates_once(self):
        result = self.authenticate(self.token)
        self.assertTrue(result.onboarded)
        self.assertEqual(result.session.username, 'alice')
        self.assertEqual(result.session.identity_key, 'alice@example.com')
        self.assertEqual(self.registry.authenticated_count(), 1)

        again = self.authenticate(self.token)
        self.assertFalse(again.onboarded)
        self.assertIs(again.session, result.session)

    def test_authenticated_session_never_reverts(self):
        self.authenticate(self.token)
        result = self.authenticate(None)
        self.assertTrue(result.session.is_authenticated)
        self.assertTrue(self.registry.get('c1').is_authenticated)

    def test_guest_can_upgrade(self):
        self.authenticate(None)
        result = self.authenticate(self.token)
        self.assertTrue(result.onboarded)

    def test_unknown_connection_returns_none(self):
        self.assertIsNone(self.authenticate(self.token, connection_id='nope'))
        self.assertIsNone(self.registry.get('nope'))

    def test_result_discarded_if_disconnected_during_verification(self):
        async def call():
            task = asyncio.create_task(self.registry.authenticate('c1', self.token))
            await asyncio.sleep(0)
            self.registry.discard('c1')
            return await task

        self.assertIsNone(asyncio.run(call()))
        self.assertIsNone(self.registry.get('c1'))
        self.assertEqual(self.registry.authenticated_count(), 0)


if __name__ == '__main__':
    unittest.main()
