# base_strategy.py
from __future__ import annotations

import asyncio
from typing import Awaitable, List, Optional

from hedge_grid.interface.io_interface import IHedgeIO, ROLE_HEDGE, ROLE_MAIN
from hedge_grid.database.logger import Logger
from hedge_grid.database.memory_state import MemoryBoundaryState, MemoryPositionState
from hedge_grid.dataclass.boundary import Boundary
from hedge_grid.dataclass.events import BreakthroughCleared, CloseHedge, ClosePosition, KillArmed, KillDisarmed, LevelAdvanced
from hedge_grid.dataclass.position import HedgePosition, MainPosition, Side
from hedge_grid.datas.strategy import StrategyConfig
from hedge_grid.notifier import LogNotifier
from hedge_grid.strategy.boundary_trailer import BoundaryTrailer
from hedge_grid.strategy.grid_engine import GridEngine
from hedge_grid.strategy.kill_switch import KillSwitch
from hedge_grid.strategy.runtime_context import RuntimeContext
import hedge_grid.utils.util as util


class BaseHedgeStrategy(IHedgeIO):
    """
    Base class : state machine shared by Live and Backtest.
    Not bound to ccxt or any exchange directly, orders go through the _io_* methods.

    States: Flat -> MainOnly -> MainPlusHedge -> MainOnly (hedge closed / killed)
            or -> MainOnly (main stopped, hedge promoted) or -> Flat.
    """

    def __init__(
        self,
        config: StrategyConfig,
        mode: str,
        notifier=None,
        boundary_db=None,
        position_db=None,
        logger: Optional[Logger] = None,
    ) -> None:
        self.config = config.validate()
        self.symbol = config.symbol
        self.mode = mode

        # state runtime
        self.main: Optional[MainPosition] = None
        self.hedge: Optional[HedgePosition] = None
        self.boundary = Boundary()
        self.ctx = RuntimeContext()
        self.last_price: Optional[float] = None

        # components
        self.engine = GridEngine(config.stop_loss_weight, config.tick_size)
        self.kill_switch = KillSwitch(
            policy=config.kill_rearm_policy,
            reset_multiplier=config.kill_reset_multiplier,
            min_armed_ms=int(config.kill_min_armed_seconds * 1000),
        )
        self.trailer = BoundaryTrailer(
            trailing_threshold=config.trailing_threshold,
            max_trail_distance=config.max_hedge_trail_distance,
            default_spacing=config.zero_level_spacing,
            policy=config.trail_default_policy,
            tick_size=config.tick_size,
        )

        # DB
        self.boundary_db = boundary_db if boundary_db is not None else MemoryBoundaryState()
        self.position_db = position_db if position_db is not None else MemoryPositionState()

        self.logger = logger or Logger()
        self.notifier = notifier or LogNotifier(self.logger)
        self.logger.log(
            f"[BaseHedgeStrategy] Init mode={mode}, symbol={self.symbol}, order_size={config.order_size}, "
            f"zero_level_spacing={config.zero_level_spacing}, grid_spacing={config.grid_spacing}, "
            f"trade_entry_spacing={config.trade_entry_spacing}, kill_spacing={config.kill_spacing}",
            level="INFO",
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def load_state(self) -> None:
        """
        Reload positions, boundary and runtime flags from the repos.
        """
        try:
            self.main, self.hedge = self.position_db.load_positions(self.symbol)
            row = self.boundary_db.load_boundary(self.symbol)
        except Exception as e:
            self.logger.log(f"[STATE] load error: {e}", level="ERROR")
            return
        self.boundary = Boundary.from_dict(row)
        self.ctx.restore(row)

    def start(self, price: float, timestamp_ms: Optional[int] = None) -> None:
        """
        Resume from persisted state using the first known price.
        """
        price = util.ensure_price(price)
        ts = timestamp_ms if timestamp_ms is not None else util.now_ms()
        self.load_state()
        self.last_price = price
        self.ctx.running = True
        self.ctx.stop_requested = False
        self._notify("Bot started")

        if self.main is not None:
            self._notify(f"Resuming main trade: {self.main.side.value} from {self.main.entry} at level {self.main.level}")
            if self.boundary.hedge_trigger(self.main.side) is None and self.ctx.cooldown_elapsed(ts):
                self._set_one_sided_boundary(ts, price, self.config.trade_entry_spacing, tag="RESUME")
        elif self.boundary.top is None or self.boundary.bottom is None:
            self._set_bracket(ts, price)

        if self.hedge is not None:
            self._notify(f"Resuming hedge trade: {self.hedge.side.value} from {self.hedge.entry} at level {self.hedge.level}")

        self._persist()

    def stop(self) -> None:
        """
        Stop consuming ticks. Orders already in flight complete but their result is dropped.
        """
        self.ctx.stop_requested = True
        self.ctx.running = False
        self._notify("Bot stopped")

    async def reset(self, timestamp_ms: Optional[int] = None) -> None:
        ts = timestamp_ms if timestamp_ms is not None else util.now_ms()
        self.main = None
        self.hedge = None
        self.boundary.clear()
        self.boundary.last_update = None
        running, stop_requested = self.ctx.running, self.ctx.stop_requested
        self.ctx = RuntimeContext(running=running, stop_requested=stop_requested)

        try:
            self.position_db.clear_positions(self.symbol)
            self.boundary_db.clear_boundary(self.symbol)
        except Exception as e:
            self.logger.log(f"[STATE] clear error: {e}", level="ERROR")
        self._notify("Persistent state cleared.")

        if self.last_price is not None:
            self._set_bracket(ts, self.last_price)
            self._persist()

        try:
            await asyncio.wait_for(self._io_cancel_all_orders(), timeout=self.config.order_timeout_seconds)
        except Exception as e:
            self.logger.log(f"[RESET] cancel all orders error: {e!r}", level="ERROR")

    # ------------------------------------------------------------------
    # Tick handler
    # ------------------------------------------------------------------
    async def on_tick(self, price: float, timestamp_ms: Optional[int] = None) -> None:
        price = util.ensure_price(price)
        ts = timestamp_ms if timestamp_ms is not None else util.now_ms()
        if self.ctx.stop_requested:
            return
        self.last_price = price

        # ===============================================================
        # 1) Flat: wait for a boundary cross
        # ===============================================================
        if self.main is None:
            await self._process_flat(ts, price)
            return

        # ===============================================================
        # 2) Main position: grid / stop-loss
        # ===============================================================
        if await self._process_main(ts, price):
            return

        # ===============================================================
        # 3) Hedge: grid / stop-loss / kill switch, or open one
        # ===============================================================
        if self.hedge is not None:
            await self._process_hedge(ts, price)
        else:
            await self._maybe_open_hedge(ts, price)

        # ===============================================================
        # 4) MainOnly: boundary re-init after cooldown and trailing
        # ===============================================================
        if self.main is not None and self.hedge is None:
            self._process_boundary(ts, price)

    # ------------------------------------------------------------------
    # Flat
    # ------------------------------------------------------------------
    async def _process_flat(self, timestamp_ms: int, price: float) -> None:
        if self.boundary.top is None or self.boundary.bottom is None:
            self._set_bracket(timestamp_ms, price)
            self._persist()
            return

        if price >= self.boundary.top:
            await self._open_main(timestamp_ms, Side.LONG, price, reason="TOP_BOUNDARY")
        elif price <= self.boundary.bottom:
            await self._open_main(timestamp_ms, Side.SHORT, price, reason="BOTTOM_BOUNDARY")

    # ------------------------------------------------------------------
    # Main
    # ------------------------------------------------------------------
    async def _process_main(self, timestamp_ms: int, price: float) -> bool:
        """
        return True when the main was closed on this tick
        """
        main = self.main
        events = self.engine.advance(main, price, self.config.spacing_for_level)
        if not events:
            return False

        for event in events:
            if isinstance(event, LevelAdvanced):
                self._log(timestamp_ms, "MAIN", f"level {event.level} at {price}, stop_loss={event.stop_loss}")
                self._notify(f"Main trade reached level {event.level} at {price}. Stop loss updated to {event.stop_loss}")
            elif isinstance(event, BreakthroughCleared):
                self._notify(f"Breakthrough price ({event.breakthrough_price}) crossed at {price}. Stop loss is now active.")

        self._persist()

        close = next((e for e in events if isinstance(e, ClosePosition)), None)
        if close is None:
            return False
        return await self._close_main(timestamp_ms, price, reason=close.reason)

    async def _open_main(self, timestamp_ms: int, side: Side, price: float, reason: str) -> bool:
        qty = self.config.order_size
        fill = await self._execute_order(f"open main {side.value}", self._io_open_position(timestamp_ms, ROLE_MAIN, side, qty, price), timestamp_ms)
        if fill is None:
            return False

        self.main = MainPosition(side=side, entry=fill, opened_at=timestamp_ms)
        self.ctx.boundary_locked = True
        self.ctx.last_hedge_close_price = None
        self._set_one_sided_boundary(timestamp_ms, price, self.config.trade_entry_spacing, tag="MAIN_OPEN")
        self._persist()

        self._log(timestamp_ms, "MAIN", f"OPEN side={side.value}, entry={fill}, qty={qty}, reason={reason}")
        self._notify(f"Main trade opened: {side.value} at {fill} (reason: {reason})")
        self._after_position_open(timestamp_ms, ROLE_MAIN, self.main)
        return True

    async def _close_main(self, timestamp_ms: int, price: float, reason: str) -> bool:
        main = self.main
        fill = await self._execute_order(f"close main {main.side.value}", self._io_close_position(timestamp_ms, ROLE_MAIN, main.side, self.config.order_size, price), timestamp_ms)
        if fill is None:
            return False

        self.main = None
        self._log(timestamp_ms, "MAIN", f"CLOSE side={main.side.value}, entry={main.entry}, close={fill}, level={main.level}, reason={reason}")
        self._notify(f"Main trade closed: {main.side.value} at {fill}, level {main.level} (reason: {reason})")
        self._after_position_close(timestamp_ms, ROLE_MAIN, main, fill, reason)

        if self.hedge is not None:
            self._promote_hedge(timestamp_ms, price)
        else:
            self.ctx.boundary_locked = False
            self.ctx.last_hedge_close_price = None
            self._set_bracket(timestamp_ms, price)
        self._persist()
        return True

    def _promote_hedge(self, timestamp_ms: int, price: float) -> None:
        hedge = self.hedge
        self.main = hedge.promote()
        self.hedge = None
        self.ctx.boundary_locked = True
        self.ctx.last_hedge_close_price = None
        self._set_one_sided_boundary(timestamp_ms, price, self.config.promotion_spacing, tag="PROMOTION")
        self._log(timestamp_ms, "HEDGE", f"PROMOTED side={self.main.side.value}, entry={self.main.entry}, breakthrough={self.main.breakthrough_price}")
        self._notify(f"Hedge trade promoted to main: {self.main.side.value} from {self.main.entry}. Grid reset and stop loss cleared.")

    # ------------------------------------------------------------------
    # Hedge
    # ------------------------------------------------------------------
    async def _maybe_open_hedge(self, timestamp_ms: int, price: float) -> None:
        main = self.main
        if main.level != 0:
            return
        trigger = self.boundary.hedge_trigger(main.side)
        if trigger is None or main.side.direction * (price - trigger) > 0:
            return
        if not self.ctx.cooldown_elapsed(timestamp_ms):
            return
        await self._open_hedge(timestamp_ms, price, reason="BOUNDARY")

    async def _open_hedge(self, timestamp_ms: int, price: float, reason: str, manual: bool = False) -> bool:
        if self.hedge is not None:
            self._notify("Hedge trade already open, ignoring open request.")
            return False
        if self.ctx.hedge_opening_in_progress:
            self._notify("Hedge open already in progress, ignoring open request.")
            return False

        side = self.main.side.opposite
        qty = self.config.order_size
        with self.ctx.hedge_opening():
            fill = await self._execute_order(f"open hedge {side.value}", self._io_open_position(timestamp_ms, ROLE_HEDGE, side, qty, price), timestamp_ms)
        if fill is None:
            return False

        breakthrough = util.to_price(fill + side.direction * 0.5 * self.config.zero_level_spacing, self.config.tick_size)
        self.hedge = HedgePosition(side=side, entry=fill, opened_at=timestamp_ms, promotion_breakthrough=breakthrough, manual=manual)
        self._persist()

        self._log(timestamp_ms, "HEDGE", f"OPEN side={side.value}, entry={fill}, qty={qty}, breakthrough={breakthrough}, reason={reason}")
        self._notify(f"Hedge trade opened: {side.value} at {fill} (breakthrough: {breakthrough}, reason: {reason})")
        self._after_position_open(timestamp_ms, ROLE_HEDGE, self.hedge)
        return True

    async def _process_hedge(self, timestamp_ms: int, price: float) -> None:
        hedge = self.hedge
        events: List[object] = self.engine.advance(hedge, price, self.config.spacing_for_level)
        if any(isinstance(e, ClosePosition) for e in events):
            for event in events:
                if isinstance(event, LevelAdvanced):
                    self._notify(f"Hedge trade reached level {event.level} at {price}. Stop loss updated to {event.stop_loss}")
            self._persist()
            await self._close_hedge(timestamp_ms, price, reason="STOP_LOSS")
            return

        events += self.kill_switch.evaluate(hedge, price, self.config.kill_fee_offset, self.config.kill_spacing, timestamp_ms)
        if not events:
            return

        kill = None
        for event in events:
            if isinstance(event, LevelAdvanced):
                self._log(timestamp_ms, "HEDGE", f"level {event.level} at {price}, stop_loss={event.stop_loss}")
                self._notify(f"Hedge trade reached level {event.level} at {price}. Stop loss updated to {event.stop_loss}")
            elif isinstance(event, KillArmed):
                self._log(timestamp_ms, "KILL", f"armed at {price}, trigger={event.trigger_price}, return={event.return_price}")
                self._notify(f"Hedge kill switch armed for {hedge.side.value} at {price}, waiting for return to {event.return_price}")
            elif isinstance(event, KillDisarmed):
                self._log(timestamp_ms, "KILL", f"disarmed at {price}")
                self._notify(f"Hedge kill switch reset, price moved too far from entry ({hedge.entry})")
            elif isinstance(event, CloseHedge):
                kill = event
        self._persist()

        if kill is not None:
            self._notify(f"Hedge kill triggered: side {hedge.side.value}, entry {hedge.entry}, current {price}")
            await self._close_hedge(timestamp_ms, price, reason=kill.reason, killed=True)

    async def _close_hedge(self, timestamp_ms: int, price: float, reason: str, killed: bool = False) -> bool:
        hedge = self.hedge
        fill = await self._execute_order(f"close hedge {hedge.side.value}", self._io_close_position(timestamp_ms, ROLE_HEDGE, hedge.side, self.config.order_size, price), timestamp_ms)
        if fill is None:
            return False

        self.hedge = None
        self._log(timestamp_ms, "HEDGE", f"CLOSE side={hedge.side.value}, entry={hedge.entry}, close={fill}, level={hedge.level}, reason={reason}")
        self._notify(f"Hedge trade closed: {hedge.side.value} at {fill}, level {hedge.level} (reason: {reason})")
        self._after_position_close(timestamp_ms, ROLE_HEDGE, hedge, fill, reason)

        self.ctx.boundary_locked = False
        if killed:
            # no new hedge until the cooldown has elapsed, boundary re-derived after that
            self.boundary.clear()
            self.ctx.last_hedge_close_price = None
            self.ctx.start_cooldown(timestamp_ms, self.config.hedge_cooldown_seconds)
            self._notify(f"Hedge boundaries cleared, cooldown {self.config.hedge_cooldown_seconds:.0f}s")
        else:
            self.ctx.last_hedge_close_price = fill
            self.boundary.extreme = None
            if self.main is not None:
                target = self.trailer.retarget(fill, fill, self.main.side)
                self.trailer.propose(
                    self.boundary,
                    target,
                    self.main.side,
                    now_ms=timestamp_ms,
                    min_move=self.config.min_boundary_move,
                    update_interval_ms=self._update_interval_ms,
                    force=True,
                )
                self._notify(f"New hedge boundary set at {target} (last hedge close {fill})")
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Boundary housekeeping (MainOnly)
    # ------------------------------------------------------------------
    def _process_boundary(self, timestamp_ms: int, price: float) -> None:
        main = self.main

        if self.boundary.is_empty:
            if self.ctx.cooldown_elapsed(timestamp_ms):
                self._set_one_sided_boundary(timestamp_ms, price, self.config.trade_entry_spacing, tag="COOLDOWN_END")
                self._persist()
            return

        last_close = self.ctx.last_hedge_close_price
        if self.ctx.boundary_locked or last_close is None:
            return
        if abs(price - last_close) <= self.config.trailing_threshold:
            return

        candidate = self.trailer.retarget(price, last_close, main.side)
        trigger = self.boundary.hedge_trigger(main.side)
        force = trigger is not None and abs(price - trigger) > self.config.forced_trail_distance
        moved = self.trailer.propose(
            self.boundary,
            candidate,
            main.side,
            now_ms=timestamp_ms,
            min_move=self.config.min_boundary_move,
            update_interval_ms=self._update_interval_ms,
            force=force,
        )
        if moved:
            self._persist()
            self._log(timestamp_ms, "BOUNDARY", f"trail hedge trigger to {candidate} (last_close={last_close}, price={price}, forced={force})")
            self._notify(f"Hedge boundary adjusted: last hedge close {last_close}, current price {price}, new hedge open price {candidate}")

    def _set_bracket(self, timestamp_ms: int, price: float) -> None:
        self.boundary.bracket(price, self.config.trade_entry_spacing, self.config.tick_size)
        self.boundary.last_update = timestamp_ms
        self._notify(f"Boundaries set: Top {self.boundary.top}, Bottom {self.boundary.bottom}")

    def _set_one_sided_boundary(self, timestamp_ms: int, price: float, spacing: float, tag: str) -> None:
        value = self.boundary.one_sided(self.main.side, price, spacing, self.config.tick_size)
        self.boundary.last_update = timestamp_ms
        name = "Bottom" if self.main.side is Side.LONG else "Top"
        self._log(timestamp_ms, "BOUNDARY", f"{tag} {name.lower()}={value}")
        self._notify(f"{name} hedge boundary set: {value}")

    @property
    def _update_interval_ms(self) -> int:
        return int(self.config.boundary_update_interval_seconds * 1000)

    # ------------------------------------------------------------------
    # Manual commands
    # ------------------------------------------------------------------
    async def manual_open_main(self, side, timestamp_ms: Optional[int] = None) -> bool:
        side = Side.parse(side)
        if self.main is not None or self.hedge is not None:
            self._notify("Main trade already open, ignoring manual open.")
            return False
        if not self._ready_for_manual():
            return False
        return await self._open_main(self._ts(timestamp_ms), side, self.last_price, reason="MANUAL")

    async def manual_close_main(self, timestamp_ms: Optional[int] = None) -> bool:
        if self.main is None:
            self._notify("No main trade to close.")
            return False
        if not self._ready_for_manual():
            return False
        return await self._close_main(self._ts(timestamp_ms), self.last_price, reason="MANUAL")

    async def manual_open_hedge(self, timestamp_ms: Optional[int] = None) -> bool:
        if self.main is None:
            self._notify("No main trade, hedge not opened.")
            return False
        if not self._ready_for_manual():
            return False
        return await self._open_hedge(self._ts(timestamp_ms), self.last_price, reason="MANUAL", manual=True)

    async def manual_close_hedge(self, timestamp_ms: Optional[int] = None) -> bool:
        if self.hedge is None:
            self._notify("No hedge trade to close.")
            return False
        if not self._ready_for_manual():
            return False
        return await self._close_hedge(self._ts(timestamp_ms), self.last_price, reason="MANUAL")

    def unlock_boundaries(self) -> None:
        self.ctx.boundary_locked = False
        self._persist()
        self._notify("Boundaries unlocked, trailing enabled.")

    def _ready_for_manual(self) -> bool:
        if self.ctx.stop_requested:
            self._notify("Bot is stopped, command ignored.")
            return False
        if self.last_price is None:
            self._notify("Unable to get current price, command ignored.")
            return False
        return True

    @staticmethod
    def _ts(timestamp_ms: Optional[int]) -> int:
        return timestamp_ms if timestamp_ms is not None else util.now_ms()

    # ------------------------------------------------------------------
    # Order execution / persistence / notification
    # ------------------------------------------------------------------
    async def _execute_order(self, action: str, call: Awaitable[Optional[float]], timestamp_ms: int) -> Optional[float]:
        """
        Await an _io_* call with a timeout.
        return: fill price, or None when the order failed or must be ignored
        """
        try:
            fill = await asyncio.wait_for(call, timeout=self.config.order_timeout_seconds)
        except asyncio.TimeoutError:
            self._log(timestamp_ms, "ORDER", f"{action} timeout after {self.config.order_timeout_seconds}s", level="ERROR")
            self._notify(f"Failed to {action}: timeout")
            return None
        except Exception as e:
            self._log(timestamp_ms, "ORDER", f"{action} error: {e!r}", level="ERROR")
            self._notify(f"Failed to {action}: {e}")
            return None

        if fill is None:
            self._log(timestamp_ms, "ORDER", f"{action} rejected", level="ERROR")
            self._notify(f"Failed to {action}: order rejected")
            return None

        if self.ctx.stop_requested:
            self._log(timestamp_ms, "ORDER", f"{action} filled at {fill} after stop, result dropped", level="WARNING")
            self._notify(f"Warning: {action} filled at {fill} after the bot was stopped. Position is untracked, check the exchange.")
            return None

        return float(fill)

    def _persist(self) -> None:
        try:
            self.boundary_db.save_boundary(self.symbol, self.boundary, self.ctx.to_dict())
            self.position_db.save_positions(self.symbol, self.main, self.hedge)
        except Exception as e:
            self.logger.log(f"[STATE] persist error: {e}", level="ERROR")

    def _notify(self, text: str) -> None:
        try:
            self.notifier.notify(text)
        except Exception as e:
            self.logger.log(f"[NOTIFY] error: {e}", level="ERROR")

    def _log(self, timestamp_ms: int, tag: str, message: str, level: str = "INFO") -> None:
        self.logger.log(f"Date: {util.timemstamp_ms_to_date(timestamp_ms)} - [{tag}] {message}", level=level)
