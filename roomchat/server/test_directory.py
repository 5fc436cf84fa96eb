import unittest
from roomchat.server.directory import GroupDirectory
from roomchat.server.errors import CannotLeaveGeneral, InvalidGroupName
from roomchat.server.models import SystemEvent, SystemEventKind, UserMessage


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestGroupDirectory(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.directory = GroupDirectory(clock=self.clock)

    def assertInSync(self):
        for name, group in self.directory.groups_by_name.items():
            for cid in group.member_ids:
                self.assertIn(name, self.directory.groups_of(cid))
        for cid, names in self.directory.memberships.items():
            for name in names:
                self.assertIn(cid, self.directory.members(name))

    def test_general_exists_at_start(self):
        self.assertEqual(self.directory.catalog(), ['General'])
        self.assertEqual(self.directory.log('General'), [])

    def test_ensure_group_is_idempotent(self):
        self.assertTrue(self.directory.ensure_group('Team X'))
        self.assertFalse(self.directory.ensure_group('Team X'))
        self.assertFalse(self.directory.ensure_group('General'))
        self.directory.ensure_group('alpha')
        self.assertEqual(self.directory.catalog(), ['General', 'Team X', 'alpha'])

    def test_group_names_are_case_sensitive(self):
        self.directory.ensure_group('team')
        self.assertTrue(self.directory.ensure_group('Team'))

    def test_join_twice_appends_one_event(self):
        self.directory.ensure_group('g1')
        log, newly = self.directory.join('c1', 'alice', 'g1')
        self.assertTrue(newly)
        self.assertEqual(len(log), 1)
        self.assertEqual(log[0].kind, SystemEventKind.JOINED_GROUP)

        log, newly = self.directory.join('c1', 'alice', 'g1')
        self.assertFalse(newly)
        self.assertEqual(len(log), 1)
        self.assertEqual(self.directory.members('g1'), {'c1'})
        self.assertEqual(self.directory.groups_of('c1'), ['g1'])
        self.assertInSync()

    def test_join_unknown_group_raises(self):
        with self.assertRaises(InvalidGroupName):
            self.directory.join('c1', 'alice', 'missing')
        self.assertEqual(self.directory.groups_of('c1'), [])

    def test_leave_general_is_rejected(self):
        self.directory.subscribe('c1', 'General')
        with self.assertRaises(CannotLeaveGeneral):
            self.directory.leave('c1', 'alice', 'General')
        self.assertEqual(self.directory.members('General'), {'c1'})
        self.assertEqual(self.directory.log('General'), [])

    def test_leave_when_not_member_is_noop(self):
        self.directory.ensure_group('g1')
        self.assertFalse(self.directory.leave('c1', 'alice', 'g1'))
        self.assertFalse(self.directory.leave('c1', 'alice', 'missing'))
        self.assertEqual(self.directory.log('g1'), [])

    def test_leave_removes_both_sides(self):
        self.directory.ensure_group('g1')
        self.directory.join('c1', 'alice', 'g1')
        self.assertTrue(self.directory.leave('c1', 'alice', 'g1'))
        self.assertEqual(self.directory.members('g1'), set())
        self.assertEqual(self.directory.groups_of('c1'), [])
        kinds = [e.kind for e in self.directory.log('g1')]
        self.assertEqual(kinds, [SystemEventKind.JOINED_GROUP, SystemEventKind.LEFT_GROUP])
        self.assertInSync()

    def test_remove_connection_leaves_logs_untouched(self):
        self.directory.ensure_group('A')
        self.directory.ensure_group('B')
        self.directory.subscribe('c1', 'General')
        self.directory.join('c1', 'alice', 'A')
        self.directory.join('c1', 'alice', 'B')
        self.directory.join('c2', 'bob', 'A')
        before_a, before_b = self.directory.log('A'), self.directory.log('B')

        removed = self.directory.remove_connection('c1')

        self.assertEqual(removed, ['General', 'A', 'B'])
        self.assertEqual(self.directory.members('A'), {'c2'})
        self.assertEqual(self.directory.members('B'), set())
        self.assertEqual(self.directory.log('A'), before_a)
        self.assertEqual(self.directory.log('B'), before_b)
        self.assertInSync()

    def test_post_appends_in_order(self):
        self.directory.ensure_group('g1')
        first = self.directory.post('alice', 'g1', 'one')
        self.clock.advance(1.5)
        second = self.directory.post('bob', 'g1', 'two')

        self.assertEqual(self.directory.log('g1'), [first, second])
        self.assertEqual(self.directory.unified_log(), [first, second])
        self.assertIsInstance(first, UserMessage)
        self.assertEqual(first.timestamp, '2023-11-14T22:13:20.000Z')
        self.assertEqual(second.timestamp, '2023-11-14T22:13:21.500Z')
        self.assertEqual(second.to_dict(), {
            'type': 'message', 'username': 'bob', 'message': 'two',
            'timestamp': '2023-11-14T22:13:21.500Z', 'group': 'g1',
        })

    def test_post_unknown_group_raises(self):
        with self.assertRaises(InvalidGroupName):
            self.directory.post('alice', 'missing', 'hi')
        self.assertEqual(self.directory.unified_log(), [])

    def test_announce_goes_to_general_and_history(self):
        event = self.directory.announce(SystemEventKind.JOINED, 'alice')
        self.assertIsInstance(event, SystemEvent)
        self.assertEqual(self.directory.log('General'), [event])
        self.assertEqual(self.directory.unified_log(), [event])
        self.assertEqual(event.to_dict()['event'], 'user-joined')
        self.assertEqual(event.to_dict()['group'], 'General')

    def test_returned_logs_are_copies(self):
        self.directory.ensure_group('g1')
        log, _ = self.directory.join('c1', 'alice', 'g1')
        log.clear()
        self.assertEqual(len(self.directory.log('g1')), 1)


if __name__ == '__main__':
    unittest.main()
