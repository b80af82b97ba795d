from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class KillRearmPolicy(str, Enum):
    PERMANENT = "PERMANENT"  # once armed, stays armed until the hedge closes
    RESET_ON_OVERRUN = "RESET_ON_OVERRUN"


class TrailDefaultPolicy(str, Enum):
    SIDE_AWARE = "SIDE_AWARE"
    SIDE_AGNOSTIC = "SIDE_AGNOSTIC"


@dataclass
class StrategyConfig:
    symbol: str
    order_size: float
    tick_size: float
    zero_level_spacing: float
    grid_spacing: float
    stop_loss_weight: float
    trade_entry_spacing: float
    trailing_threshold: float
    max_hedge_trail_distance: float
    kill_spacing: float
    kill_fee_offset: float = 0.0
    promotion_spacing: float | None = None  # defaults to trade_entry_spacing
    kill_min_armed_seconds: float = 0.0
    kill_reset_multiplier: float = 1.5
    kill_rearm_policy: KillRearmPolicy = KillRearmPolicy.PERMANENT
    trail_default_policy: TrailDefaultPolicy = TrailDefaultPolicy.SIDE_AWARE
    hedge_cooldown_seconds: float = 60.0
    boundary_update_interval_seconds: float = 5.0
    min_boundary_move: float = 0.0
    order_timeout_seconds: float = 15.0
    poll_interval_seconds: float = 1.0
    error_backoff_seconds: float = 5.0
    leverage: int = 1

    def __post_init__(self) -> None:
        self.kill_rearm_policy = KillRearmPolicy(str(self.kill_rearm_policy).upper()) if not isinstance(self.kill_rearm_policy, KillRearmPolicy) else self.kill_rearm_policy
        self.trail_default_policy = (
            TrailDefaultPolicy(str(self.trail_default_policy).upper()) if not isinstance(self.trail_default_policy, TrailDefaultPolicy) else self.trail_default_policy
        )
        if self.promotion_spacing is None:
            self.promotion_spacing = self.trade_entry_spacing

    # ------------------------------------------------------------------
    def spacing_for_level(self, level: int) -> float:
        spacing = self.zero_level_spacing if level == 0 else self.grid_spacing
        if not math.isfinite(spacing) or spacing <= 0:
            raise ValueError(f"Invalid spacing {spacing!r} for level {level}")
        return spacing

    @property
    def forced_trail_distance(self) -> float:
        """Boundary lag (from price) beyond which trailing ignores the throttle."""
        return self.trade_entry_spacing + 2 * self.zero_level_spacing

    def validate(self) -> "StrategyConfig":
        positives = {
            "order_size": self.order_size,
            "tick_size": self.tick_size,
            "zero_level_spacing": self.zero_level_spacing,
            "grid_spacing": self.grid_spacing,
            "trade_entry_spacing": self.trade_entry_spacing,
            "promotion_spacing": self.promotion_spacing,
            "kill_spacing": self.kill_spacing,
            "order_timeout_seconds": self.order_timeout_seconds,
        }
        for name, value in positives.items():
            if value is None or not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be > 0 (got {value!r})")

        non_negatives = {
            "kill_fee_offset": self.kill_fee_offset,
            "trailing_threshold": self.trailing_threshold,
            "max_hedge_trail_distance": self.max_hedge_trail_distance,
            "kill_min_armed_seconds": self.kill_min_armed_seconds,
            "hedge_cooldown_seconds": self.hedge_cooldown_seconds,
            "boundary_update_interval_seconds": self.boundary_update_interval_seconds,
            "min_boundary_move": self.min_boundary_move,
            "poll_interval_seconds": self.poll_interval_seconds,
            "error_backoff_seconds": self.error_backoff_seconds,
        }
        for name, value in non_negatives.items():
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be >= 0 (got {value!r})")

        if not 0 < self.stop_loss_weight < 1:
            raise ValueError(f"stop_loss_weight must be in (0, 1) (got {self.stop_loss_weight!r})")
        if self.kill_reset_multiplier <= 1:
            raise ValueError(f"kill_reset_multiplier must be > 1 (got {self.kill_reset_multiplier!r})")
        if self.leverage < 1:
            raise ValueError(f"leverage must be >= 1 (got {self.leverage!r})")
        return self

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StrategyConfig":
        """
        Build from the lower-cased CONFIG dict (see hedge_grid.config).
        Unknown keys are ignored, missing optional keys keep their defaults.
        """
        fields = {k: config[k] for k in cls.__dataclass_fields__ if k in config and config[k] is not None and config[k] != ""}
        if "symbol" in fields:
            fields["symbol"] = str(fields["symbol"])
        if "leverage" in fields:
            fields["leverage"] = int(fields["leverage"])
        for key, value in list(fields.items()):
            if key not in ("symbol", "leverage", "kill_rearm_policy", "trail_default_policy"):
                fields[key] = float(value)
        return cls(**fields).validate()
