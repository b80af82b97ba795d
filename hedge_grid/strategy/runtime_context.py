from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional


@dataclass
class RuntimeContext:
    """
    Process-wide runtime flags owned by the strategy and passed around explicitly.
    Everything except hedge_opening_in_progress / running / stop_requested is
    persisted together with the boundary.
    """

    hedge_opening_in_progress: bool = False
    hedge_cooldown_until: int = 0  # timestamp ms
    boundary_locked: bool = False
    last_hedge_close_price: float | None = None
    running: bool = False
    stop_requested: bool = False

    def cooldown_elapsed(self, now_ms: int) -> bool:
        return now_ms >= self.hedge_cooldown_until

    def start_cooldown(self, now_ms: int, seconds: float) -> None:
        self.hedge_cooldown_until = int(now_ms + seconds * 1000)

    @contextmanager
    def hedge_opening(self) -> Iterator[None]:
        """
        Mutex around the suspending hedge-open call, released on every exit path.
        """
        self.hedge_opening_in_progress = True
        try:
            yield
        finally:
            self.hedge_opening_in_progress = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cooldown_until": self.hedge_cooldown_until,
            "boundary_locked": self.boundary_locked,
            "last_hedge_close_price": self.last_hedge_close_price,
        }

    def restore(self, data: Optional[Dict[str, Any]]) -> None:
        if not data:
            return
        self.hedge_cooldown_until = int(data.get("cooldown_until") or 0)
        self.boundary_locked = bool(data.get("boundary_locked"))
        last = data.get("last_hedge_close_price")
        self.last_hedge_close_price = float(last) if last is not None else None
