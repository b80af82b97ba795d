from dataclasses import dataclass


@dataclass(frozen=True)
class LevelAdvanced:
    level: int
    price: float
    stop_loss: float | None


@dataclass(frozen=True)
class BreakthroughCleared:
    breakthrough_price: float
    price: float


@dataclass(frozen=True)
class ClosePosition:
    price: float
    reason: str = "STOP_LOSS"


@dataclass(frozen=True)
class KillArmed:
    trigger_price: float
    return_price: float
    price: float


@dataclass(frozen=True)
class KillDisarmed:
    price: float


@dataclass(frozen=True)
class CloseHedge:
    price: float
    reason: str = "KILL"
