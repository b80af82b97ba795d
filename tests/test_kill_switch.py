import unittest

from hedge_grid.dataclass.events import CloseHedge, KillArmed, KillDisarmed
from hedge_grid.dataclass.position import HedgePosition, Side
from hedge_grid.datas.strategy import KillRearmPolicy
from hedge_grid.strategy.kill_switch import KillSwitch


def short_hedge(**kw):
    return HedgePosition(side=Side.SHORT, entry=100.0, opened_at=0, **kw)


class TestKillSwitch(unittest.TestCase):
    def setUp(self):
        self.ks = KillSwitch()

    def test_short_hedge_arms_then_fires_at_fee_adjusted_entry(self):
        hedge = short_hedge()
        # fee adjusted entry 98, arm trigger 93
        self.assertEqual(self.ks.evaluate(hedge, 95.0, 2.0, 5.0, 0), [])
        self.assertFalse(hedge.kill_armed)

        events = self.ks.evaluate(hedge, 92.0, 2.0, 5.0, 1000)
        self.assertEqual(events, [KillArmed(trigger_price=93.0, return_price=98.0, price=92.0)])
        self.assertTrue(hedge.kill_armed)
        self.assertEqual(hedge.kill_armed_at, 1000)

        self.assertEqual(self.ks.evaluate(hedge, 97.5, 2.0, 5.0, 2000), [])
        self.assertEqual(self.ks.evaluate(hedge, 98.0, 2.0, 5.0, 3000), [CloseHedge(price=98.0, reason="KILL")])

    def test_unarmed_hedge_never_fires(self):
        hedge = short_hedge()
        self.assertEqual(self.ks.evaluate(hedge, 99.0, 2.0, 5.0, 0), [])
        self.assertEqual(self.ks.evaluate(hedge, 105.0, 2.0, 5.0, 0), [])

    def test_arming_tick_does_not_fire(self):
        # a zero kill spacing arms at the fee-adjusted entry itself
        hedge = short_hedge()
        events = self.ks.evaluate(hedge, 98.0, 2.0, 0.0, 0)
        self.assertEqual([type(e) for e in events], [KillArmed])

    def test_armed_notification_only_once(self):
        hedge = short_hedge()
        self.ks.evaluate(hedge, 92.0, 2.0, 5.0, 0)
        self.assertEqual(self.ks.evaluate(hedge, 90.0, 2.0, 5.0, 0), [])
        self.assertTrue(hedge.kill_armed_notified)

    def test_long_hedge(self):
        hedge = HedgePosition(side=Side.LONG, entry=100.0, opened_at=0)
        self.assertIsInstance(self.ks.evaluate(hedge, 107.0, 2.0, 5.0, 0)[0], KillArmed)
        self.assertEqual(self.ks.evaluate(hedge, 102.5, 2.0, 5.0, 0), [])
        self.assertIsInstance(self.ks.evaluate(hedge, 101.0, 2.0, 5.0, 0)[0], CloseHedge)

    def test_manual_hedge_is_skipped(self):
        hedge = short_hedge(manual=True)
        self.assertEqual(self.ks.evaluate(hedge, 80.0, 2.0, 5.0, 0), [])
        self.assertFalse(hedge.kill_armed)

    def test_min_armed_time(self):
        ks = KillSwitch(min_armed_ms=60_000)
        hedge = short_hedge()
        ks.evaluate(hedge, 92.0, 2.0, 5.0, 0)
        self.assertEqual(ks.evaluate(hedge, 99.0, 2.0, 5.0, 30_000), [])
        self.assertIsInstance(ks.evaluate(hedge, 99.0, 2.0, 5.0, 60_000)[0], CloseHedge)

    def test_permanent_policy_never_disarms(self):
        hedge = short_hedge()
        self.ks.evaluate(hedge, 92.0, 2.0, 5.0, 0)
        self.assertEqual(self.ks.evaluate(hedge, 80.0, 2.0, 5.0, 0), [])
        self.assertTrue(hedge.kill_armed)

    def test_reset_on_overrun_policy(self):
        ks = KillSwitch(policy=KillRearmPolicy.RESET_ON_OVERRUN, reset_multiplier=1.5)
        hedge = short_hedge()
        ks.evaluate(hedge, 92.0, 2.0, 5.0, 0)
        # overrun limit 98 - 7.5 = 90.5
        self.assertEqual(ks.evaluate(hedge, 90.5, 2.0, 5.0, 0), [])
        self.assertEqual(ks.evaluate(hedge, 90.0, 2.0, 5.0, 0), [KillDisarmed(price=90.0)])
        self.assertFalse(hedge.kill_armed)
        self.assertTrue(hedge.kill_overrun)

        # staying past the overrun neither re-arms nor disarms again
        for price in (89.0, 88.0, 90.0, 85.0):
            self.assertEqual(ks.evaluate(hedge, price, 2.0, 5.0, 0), [])
            self.assertFalse(hedge.kill_armed)

        # back inside the band: re-arms silently, then fires on the return
        self.assertEqual(ks.evaluate(hedge, 91.0, 2.0, 5.0, 0), [])
        self.assertTrue(hedge.kill_armed)
        self.assertFalse(hedge.kill_overrun)
        self.assertIsInstance(ks.evaluate(hedge, 98.0, 2.0, 5.0, 0)[0], CloseHedge)


if __name__ == "__main__":
    unittest.main()
