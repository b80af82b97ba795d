import unittest

from hedge_grid.dataclass.boundary import Boundary
from hedge_grid.dataclass.position import HedgePosition, MainPosition, Side


class TestSide(unittest.TestCase):
    def test_parse_aliases(self):
        self.assertIs(Side.parse("buy"), Side.LONG)
        self.assertIs(Side.parse(" Long "), Side.LONG)
        self.assertIs(Side.parse("SELL"), Side.SHORT)
        self.assertIs(Side.parse(Side.SHORT), Side.SHORT)

    def test_parse_rejects_unknown(self):
        for bad in ("up", "", None, 1):
            with self.assertRaises(ValueError):
                Side.parse(bad)

    def test_direction_and_opposite(self):
        self.assertEqual(Side.LONG.direction, 1)
        self.assertEqual(Side.SHORT.direction, -1)
        self.assertIs(Side.LONG.opposite, Side.SHORT)


class TestPositions(unittest.TestCase):
    def test_promote_resets_grid_and_keeps_side_entry(self):
        hedge = HedgePosition(
            side=Side.SHORT,
            entry=100.0,
            opened_at=5,
            level=3,
            stop_loss=95.5,
            promotion_breakthrough=99.0,
            kill_armed=True,
            kill_armed_notified=True,
        )
        main = hedge.promote()
        self.assertIsInstance(main, MainPosition)
        self.assertIs(main.side, Side.SHORT)
        self.assertEqual(main.entry, 100.0)
        self.assertEqual(main.opened_at, 5)
        self.assertEqual(main.level, 0)
        self.assertIsNone(main.stop_loss)
        self.assertEqual(main.breakthrough_price, 99.0)
        self.assertFalse(hasattr(main, "kill_armed"))

    def test_hedge_dict_round_trip_keeps_kill_state(self):
        hedge = HedgePosition(side=Side.LONG, entry=50.5, opened_at=1, kill_armed=True, kill_armed_at=9, manual=True)
        data = hedge.to_dict()
        self.assertEqual(data["side"], "LONG")
        restored = HedgePosition.from_dict({**data, "kill_armed": 1, "manual": 1, "role": "HEDGE"})
        self.assertEqual(restored, hedge)

    def test_main_from_dict_ignores_hedge_columns(self):
        main = MainPosition.from_dict({"side": "SHORT", "entry": "101.5", "opened_at": 3, "level": 2, "stop_loss": 103.0, "kill_armed": 0})
        self.assertEqual(main.entry, 101.5)
        self.assertIs(main.side, Side.SHORT)


class TestBoundary(unittest.TestCase):
    def test_bracket(self):
        b = Boundary(extreme=1.0)
        b.bracket(100.2, 10.0, 0.5)
        self.assertEqual((b.top, b.bottom, b.extreme), (110.0, 90.0, None))

    def test_one_sided_long_sets_bottom_only(self):
        b = Boundary(top=110.0, bottom=90.0)
        value = b.one_sided(Side.LONG, 110.0, 10.0, 0.5)
        self.assertEqual(value, 100.0)
        self.assertEqual((b.top, b.bottom, b.extreme), (None, 100.0, 100.0))
        self.assertEqual(b.hedge_trigger(Side.LONG), 100.0)

    def test_one_sided_short_sets_top_only(self):
        b = Boundary(top=110.0, bottom=90.0)
        b.one_sided(Side.SHORT, 90.0, 10.0, 0.5)
        self.assertEqual((b.top, b.bottom), (100.0, None))
        self.assertIsNone(b.hedge_trigger(Side.LONG))

    def test_clear_and_from_dict(self):
        b = Boundary.from_dict({"top": "101.5", "bottom": None, "extreme": 101.5, "last_update": 7, "cooldown_until": 0})
        self.assertEqual(b.top, 101.5)
        self.assertEqual(b.last_update, 7)
        b.clear()
        self.assertTrue(b.is_empty)
        self.assertTrue(Boundary.from_dict(None).is_empty)


if __name__ == "__main__":
    unittest.main()
