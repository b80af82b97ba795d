from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def direction(self) -> int:
        return 1 if self is Side.LONG else -1

    @property
    def opposite(self) -> "Side":
        return Side.SHORT if self is Side.LONG else Side.LONG

    @classmethod
    def parse(cls, value: Any) -> "Side":
        if isinstance(value, Side):
            return value
        aliases = {"LONG": cls.LONG, "BUY": cls.LONG, "SHORT": cls.SHORT, "SELL": cls.SHORT}
        key = str(value).strip().upper() if value is not None else ""
        if key not in aliases:
            raise ValueError(f"Invalid side '{value}'. Must be one of LONG/BUY/SHORT/SELL.")
        return aliases[key]


@dataclass
class GridPosition:
    side: Side
    entry: float
    opened_at: int  # timestamp ms
    level: int = 0
    stop_loss: float | None = None
    # stop-loss is not evaluated until price moves past this (set on promoted mains)
    breakthrough_price: float | None = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["side"] = self.side.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        fields["side"] = Side.parse(fields["side"])
        fields["entry"] = float(fields["entry"])
        fields["opened_at"] = int(fields.get("opened_at") or 0)
        fields["level"] = int(fields.get("level") or 0)
        return cls(**fields)


@dataclass
class MainPosition(GridPosition):
    pass


@dataclass
class HedgePosition(GridPosition):
    # copied into MainPosition.breakthrough_price when this hedge is promoted
    promotion_breakthrough: float | None = None
    kill_armed: bool = False
    kill_armed_notified: bool = False
    kill_armed_at: int | None = None
    # disarmed past the overrun level, re-armable once back inside it
    kill_overrun: bool = False
    manual: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        pos = super().from_dict(data)
        pos.kill_armed = bool(pos.kill_armed)
        pos.kill_armed_notified = bool(pos.kill_armed_notified)
        pos.kill_overrun = bool(pos.kill_overrun)
        pos.manual = bool(pos.manual)
        return pos

    def promote(self) -> MainPosition:
        """
        Turn this hedge into the new main: same side/entry, grid and stop-loss reset.
        """
        return MainPosition(
            side=self.side,
            entry=self.entry,
            opened_at=self.opened_at,
            level=0,
            stop_loss=None,
            breakthrough_price=self.promotion_breakthrough,
        )
