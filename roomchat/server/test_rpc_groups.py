import unittest
import asyncio
from roomchat.proto import chat_pb2, chat_pb2_grpc
from roomchat.server.main import build_service
from roomchat.server.transport import to_event, to_server_event
from roomchat.server.errors import ValidationError
from roomchat.server.models import Authenticate, JoinGroup, PostMessage, TypingStop
from roomchat.utils.config import ServerConfig


async def feed(events):
    for e in events:
        yield e


class TestRPCGroups(unittest.TestCase):
    def setUp(self):
        config = ServerConfig(jwt_secret='test-secret-key-long-enough-for-hs256!')
        config.bcrypt_rounds = 4
        self.service = build_service(config)
        alice = self.service.credentials.register_identity('alice', 'alice@example.com', 'secret1')
        self.token = self.service.credentials.issue_credential(alice)

    def test_to_event(self):
        self.assertEqual(to_event(chat_pb2.ClientEvent(join_group=chat_pb2.GroupRef(group_name="Team X"))),
                         JoinGroup(group_name="Team X"))
        self.assertEqual(to_event(chat_pb2.ClientEvent(post_message=chat_pb2.PostMessage(message="hi"))),
                         PostMessage(text="hi", group=None))
        self.assertEqual(to_event(chat_pb2.ClientEvent(authenticate=chat_pb2.Authenticate())),
                         Authenticate(token=None))
        self.assertEqual(to_event(chat_pb2.ClientEvent(typing_stop=chat_pb2.Typing(group="g"))),
                         TypingStop(group="g"))
        with self.assertRaises(ValidationError):
            to_event(chat_pb2.ClientEvent())

    def test_to_server_event(self):
        msg = to_server_event({"event": "group-messages", "data": {"group": "General", "chatHistory": [
            {"type": "system", "event": "user-joined", "username": "alice", "group": "General",
             "timestamp": "2024-01-01T00:00:00.000Z"},
            {"type": "message", "username": "alice", "message": "hi", "group": "General",
             "timestamp": "2024-01-01T00:00:01.000Z"},
        ]}})
        self.assertEqual(msg.WhichOneof("kind"), "group_messages")
        self.assertEqual([e.type for e in msg.group_messages.chat_history], ["system", "message"])
        self.assertEqual(msg.group_messages.chat_history[1].message, "hi")

        guest = to_server_event({"event": "auth-status", "data": {"isAuthenticated": False, "isGuest": True}})
        self.assertTrue(guest.auth_status.is_guest)
        self.assertEqual(guest.auth_status.username, "")
        self.assertEqual(to_server_event({"event": "user-count", "data": {"count": 3}}).user_count.count, 3)

        # survives the wire
        raw = msg.SerializeToString()
        self.assertEqual(chat_pb2.ServerEvent.FromString(raw), msg)

    def test_connect_stream_group_flow(self):
        async def call():
            inbound = [
                chat_pb2.ClientEvent(authenticate=chat_pb2.Authenticate(token=self.token)),
                chat_pb2.ClientEvent(create_group=chat_pb2.GroupRef(group_name="Team X")),
                chat_pb2.ClientEvent(),
                chat_pb2.ClientEvent(post_message=chat_pb2.PostMessage(message="hello team", group="Team X")),
                chat_pb2.ClientEvent(leave_group=chat_pb2.GroupRef(group_name="General")),
            ]
            return [m async for m in self.service.Connect(feed(inbound), None)]

        out = asyncio.run(call())
        kinds = [m.WhichOneof("kind") for m in out]
        self.assertEqual(kinds[:2], ["auth_status", "all_groups"])
        self.assertIn(["General", "Team X"], [list(m.all_groups.groups) for m in out if m.HasField("all_groups")])
        self.assertIn(["General", "Team X"], [list(m.user_groups.groups) for m in out if m.HasField("user_groups")])

        errors = [m.error.message for m in out if m.HasField("error")]
        self.assertEqual(errors, ["Event kind is missing", "Cannot leave General group"])

        team_feed = [m.group_messages for m in out
                     if m.HasField("group_messages") and m.group_messages.group == "Team X"]
        self.assertEqual(team_feed[-1].chat_history[-1].message, "hello team")

        # half-close tears the connection down
        engine = self.service.engine
        self.assertEqual(engine.router.queues, {})
        self.assertEqual(engine.directory.members("Team X"), set())
        self.assertEqual(engine.directory.log("General")[-1].to_dict()["event"], "user-left")

    def test_list_groups_after_stream(self):
        async def call():
            inbound = [
                chat_pb2.ClientEvent(authenticate=chat_pb2.Authenticate(token=self.token)),
                chat_pb2.ClientEvent(join_group=chat_pb2.GroupRef(group_name="#g1")),
                chat_pb2.ClientEvent(join_group=chat_pb2.GroupRef(group_name="#g2")),
            ]
            async for _ in self.service.Connect(feed(inbound), None):
                pass

        asyncio.run(call())
        self.assertEqual(self.service.engine.directory.catalog(), ["General", "#g1", "#g2"])

    def test_handlers_registered_on_server(self):
        registered = []

        class FakeServer:
            def add_generic_rpc_handlers(self, handlers):
                registered.extend(handlers)

        chat_pb2_grpc.add_CoordinatorServicer_to_server(self.service, FakeServer())
        self.assertEqual(len(registered), 1)
        self.assertEqual(registered[0].service_name(), "roomchat.Coordinator")


if __name__ == '__main__':
    unittest.main()
