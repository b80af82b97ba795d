from __future__ import annotations

from typing import List

from hedge_grid.dataclass.events import CloseHedge, KillArmed, KillDisarmed
from hedge_grid.dataclass.position import HedgePosition
from hedge_grid.datas.strategy import KillRearmPolicy


class KillSwitch:
    """
    Early, fee-aware exit for a hedge.

    Once the hedge has shown a favourable excursion of kill_spacing past its
    fee-adjusted entry it is armed. An armed hedge that comes back to the
    fee-adjusted entry is closed at breakeven, independent of the grid stop.
    """

    def __init__(self, policy: KillRearmPolicy = KillRearmPolicy.PERMANENT, reset_multiplier: float = 1.5, min_armed_ms: int = 0) -> None:
        self.policy = KillRearmPolicy(policy)
        self.reset_multiplier = float(reset_multiplier)
        self.min_armed_ms = int(min_armed_ms)

    @staticmethod
    def fee_adjusted_entry(hedge: HedgePosition, fee_offset: float) -> float:
        return hedge.entry + hedge.side.direction * fee_offset

    def arm_price(self, hedge: HedgePosition, fee_offset: float, kill_spacing: float) -> float:
        return self.fee_adjusted_entry(hedge, fee_offset) + hedge.side.direction * kill_spacing

    def evaluate(self, hedge: HedgePosition, price: float, fee_offset: float, kill_spacing: float, timestamp_ms: int) -> List[object]:
        if hedge.manual:
            return []

        direction = hedge.side.direction
        fee_entry = self.fee_adjusted_entry(hedge, fee_offset)
        arm_price = fee_entry + direction * kill_spacing
        overrun = fee_entry + direction * kill_spacing * self.reset_multiplier

        if not hedge.kill_armed:
            if hedge.kill_overrun:
                # stays disarmed until price is back inside the overrun band
                if direction * (price - overrun) > 0:
                    return []
                hedge.kill_overrun = False
            if direction * (price - arm_price) >= 0:
                hedge.kill_armed = True
                hedge.kill_armed_at = timestamp_ms
                if not hedge.kill_armed_notified:
                    hedge.kill_armed_notified = True
                    return [KillArmed(trigger_price=arm_price, return_price=fee_entry, price=price)]
            # arming tick never fires
            return []

        if self.policy is KillRearmPolicy.RESET_ON_OVERRUN:
            if direction * (price - overrun) > 0:
                hedge.kill_armed = False
                hedge.kill_armed_at = None
                hedge.kill_overrun = True
                return [KillDisarmed(price=price)]

        armed_at = hedge.kill_armed_at if hedge.kill_armed_at is not None else timestamp_ms
        armed_for = timestamp_ms - armed_at
        if armed_for < self.min_armed_ms:
            return []

        if direction * (price - fee_entry) <= 0:
            return [CloseHedge(price=price, reason="KILL")]
        return []
