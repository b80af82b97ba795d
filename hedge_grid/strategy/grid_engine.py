from __future__ import annotations

import math
from typing import Callable, List

from hedge_grid.dataclass.events import BreakthroughCleared, ClosePosition, LevelAdvanced
from hedge_grid.dataclass.position import GridPosition
import hedge_grid.utils.util as util

SpacingFn = Callable[[int], float]


class GridEngine:
    """
    Advance a position's grid level as price moves in its favour, trail the
    stop-loss behind the last two grid prices and report when the stop is hit.

    Grid prices are cumulative from entry:
        grid_price(0) = entry
        grid_price(n) = grid_price(n - 1) + direction * spacing_fn(n - 1)

    The engine mutates level / stop_loss / breakthrough_price on the position
    but never opens or closes anything, it only returns events.
    """

    def __init__(self, stop_loss_weight: float, tick_size: float) -> None:
        if not 0 < stop_loss_weight < 1:
            raise ValueError(f"stop_loss_weight must be in (0, 1) (got {stop_loss_weight!r})")
        self.stop_loss_weight = float(stop_loss_weight)
        self.tick_size = float(tick_size)

    def grid_price(self, position: GridPosition, level: int, spacing_fn: SpacingFn) -> float:
        price = position.entry
        for k in range(level):
            price += position.side.direction * self._spacing(spacing_fn, k)
        return util.to_price(price, self.tick_size)

    def next_threshold(self, position: GridPosition, spacing_fn: SpacingFn) -> float:
        return self.grid_price(position, position.level + 1, spacing_fn)

    def advance(self, position: GridPosition, price: float, spacing_fn: SpacingFn) -> List[object]:
        events: List[object] = []
        direction = position.side.direction

        # 1) level advance, a gapping tick may cross several levels
        next_price = self.next_threshold(position, spacing_fn)
        while direction * (price - next_price) >= 0:
            prev_price = self.grid_price(position, position.level, spacing_fn)
            position.level += 1
            stop = util.to_price(prev_price + self.stop_loss_weight * (next_price - prev_price), self.tick_size)
            # stop-loss only ratchets forward
            if position.stop_loss is None or direction * (stop - position.stop_loss) > 0:
                position.stop_loss = stop
            events.append(LevelAdvanced(level=position.level, price=price, stop_loss=position.stop_loss))
            next_price = self.next_threshold(position, spacing_fn)

        # 2) breakthrough gate
        if position.breakthrough_price is not None:
            if direction * (price - position.breakthrough_price) > 0:
                events.append(BreakthroughCleared(breakthrough_price=position.breakthrough_price, price=price))
                position.breakthrough_price = None
            else:
                return events

        # 3) stop condition
        if position.level >= 1 and position.stop_loss is not None:
            if direction * (price - position.stop_loss) <= 0:
                events.append(ClosePosition(price=price, reason="STOP_LOSS"))

        return events

    @staticmethod
    def _spacing(spacing_fn: SpacingFn, level: int) -> float:
        spacing = spacing_fn(level)
        if spacing is None or not math.isfinite(spacing) or spacing <= 0:
            raise ValueError(f"Invalid spacing {spacing!r} for level {level}")
        return float(spacing)
