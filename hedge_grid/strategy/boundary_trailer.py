from __future__ import annotations

from hedge_grid.dataclass.boundary import Boundary
from hedge_grid.dataclass.position import Side
from hedge_grid.datas.strategy import TrailDefaultPolicy
import hedge_grid.utils.util as util


class BoundaryTrailer:
    """
    Re-entry boundary computation after a hedge close and while trailing.

    retarget(): where the hedge trigger should go.
    propose(): whether the boundary may actually move there (throttle,
    one-directional ratchet, minimum move).
    """

    def __init__(
        self,
        trailing_threshold: float,
        max_trail_distance: float,
        default_spacing: float,
        policy: TrailDefaultPolicy = TrailDefaultPolicy.SIDE_AWARE,
        tick_size: float = 0.01,
    ) -> None:
        self.trailing_threshold = float(trailing_threshold)
        self.max_trail_distance = float(max_trail_distance)
        self.default_spacing = float(default_spacing)
        self.policy = TrailDefaultPolicy(policy)
        self.tick_size = float(tick_size)

    def retarget(self, close_price: float, last_reference_price: float, side: Side) -> float:
        distance = abs(close_price - last_reference_price)

        if distance <= self.trailing_threshold:
            if self.policy is TrailDefaultPolicy.SIDE_AWARE and side is Side.SHORT:
                target = last_reference_price + self.default_spacing
            else:
                target = last_reference_price - self.default_spacing
        else:
            # halve the overshoot, capped per step
            adjustment = 0.5 * (close_price - last_reference_price)
            adjustment = max(-self.max_trail_distance, min(self.max_trail_distance, adjustment))
            target = last_reference_price + adjustment

        return util.to_price(target, self.tick_size)

    def is_tighter(self, boundary: Boundary, candidate: float, side: Side) -> bool:
        """Higher bottom for a LONG main, lower top for a SHORT main."""
        if boundary.extreme is None:
            return True
        return side.direction * (candidate - boundary.extreme) > 0

    def propose(
        self,
        boundary: Boundary,
        candidate: float,
        side: Side,
        now_ms: int,
        min_move: float,
        update_interval_ms: int,
        force: bool = False,
    ) -> bool:
        if not force and boundary.last_update is not None and now_ms - boundary.last_update < update_interval_ms:
            return False

        if boundary.extreme is not None:
            if not self.is_tighter(boundary, candidate, side):
                return False
            if abs(candidate - boundary.extreme) < min_move:
                return False

        boundary.set_hedge_trigger(side, candidate)
        boundary.last_update = now_ms
        return True
