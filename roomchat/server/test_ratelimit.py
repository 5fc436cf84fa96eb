import unittest
from roomchat.server.ratelimit import RateLimiter


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestRateLimiter(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(window=60.0, cap=30, clock=self.clock)

    def test_cap_within_window(self):
        allowed = [self.limiter.try_consume('c1') for _ in range(30)]
        self.assertTrue(all(allowed))
        self.assertFalse(self.limiter.try_consume('c1'))
        # rejections do not increment the counter
        self.assertFalse(self.limiter.try_consume('c1'))
        self.assertEqual(self.limiter.windows['c1'].count, 30)

    def test_window_resets_after_expiry(self):
        for _ in range(30):
            self.limiter.try_consume('c1')
        self.clock.advance(60)
        # still inside the window at exactly reset_at
        self.assertFalse(self.limiter.try_consume('c1'))
        self.clock.advance(0.001)
        self.assertTrue(self.limiter.try_consume('c1'))
        self.assertEqual(self.limiter.windows['c1'].count, 1)
        self.assertAlmostEqual(self.limiter.windows['c1'].reset_at, self.clock.now + 60)

    def test_budgets_are_per_connection(self):
        for _ in range(30):
            self.limiter.try_consume('c1')
        self.assertFalse(self.limiter.try_consume('c1'))
        self.assertTrue(self.limiter.try_consume('c2'))

    def test_discard_drops_window(self):
        for _ in range(30):
            self.limiter.try_consume('c1')
        self.limiter.discard('c1')
        self.assertNotIn('c1', self.limiter.windows)
        self.assertTrue(self.limiter.try_consume('c1'))
        self.limiter.discard('unknown')


if __name__ == '__main__':
    unittest.main()
