from typing import Optional, Tuple

from hedge_grid.database.base_database import BaseMySQLRepo
from hedge_grid.dataclass.position import HedgePosition, MainPosition

_COLUMNS = (
    "side",
    "entry",
    "opened_at",
    "level",
    "stop_loss",
    "breakthrough_price",
    "promotion_breakthrough",
    "kill_armed",
    "kill_armed_notified",
    "kill_armed_at",
    "kill_overrun",
    "manual",
)


class PositionState(BaseMySQLRepo):
    """
    Persist the open MAIN / HEDGE positions, one row per (symbol, role).
    A role without a row means no open position.
    """

    def __init__(self, **db_kwargs):
        super().__init__(**db_kwargs)
        self._execute_ddl(
            """
            CREATE TABLE IF NOT EXISTS `hedge_positions` (
                `symbol` varchar(64) NOT NULL,
                `role` varchar(8) NOT NULL,
                `side` varchar(8) NOT NULL,
                `entry` decimal(18, 8) NOT NULL,
                `opened_at` bigint NOT NULL,
                `level` int NOT NULL DEFAULT 0,
                `stop_loss` decimal(18, 8) DEFAULT NULL,
                `breakthrough_price` decimal(18, 8) DEFAULT NULL,
                `promotion_breakthrough` decimal(18, 8) DEFAULT NULL,
                `kill_armed` tinyint(1) NOT NULL DEFAULT 0,
                `kill_armed_notified` tinyint(1) NOT NULL DEFAULT 0,
                `kill_armed_at` bigint DEFAULT NULL,
                `kill_overrun` tinyint(1) NOT NULL DEFAULT 0,
                `manual` tinyint(1) NOT NULL DEFAULT 0,
                `update_date` datetime DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
                PRIMARY KEY (`symbol`, `role`)
            )
            """
        )

    def load_positions(self, symbol: str) -> Tuple[Optional[MainPosition], Optional[HedgePosition]]:
        conn = self._get_conn()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute("SELECT * FROM hedge_positions WHERE symbol = %s", (symbol,))
            rows = cursor.fetchall()
        finally:
            cursor.close()
            conn.close()

        main, hedge = None, None
        for row in rows:
            for key in ("entry", "stop_loss", "breakthrough_price", "promotion_breakthrough"):
                if row.get(key) is not None:
                    row[key] = float(row[key])
            if row["role"] == "MAIN":
                main = MainPosition.from_dict(row)
            elif row["role"] == "HEDGE":
                hedge = HedgePosition.from_dict(row)
        return main, hedge

    def save_positions(self, symbol: str, main: Optional[MainPosition], hedge: Optional[HedgePosition]) -> None:
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            for role, pos in (("MAIN", main), ("HEDGE", hedge)):
                if pos is None:
                    cursor.execute("DELETE FROM hedge_positions WHERE symbol = %s AND role = %s", (symbol, role))
                    continue
                data = {k: None for k in _COLUMNS}
                data.update({k: v for k, v in pos.to_dict().items() if k in _COLUMNS})
                for flag in ("kill_armed", "kill_armed_notified", "kill_overrun", "manual"):
                    data[flag] = 1 if data[flag] else 0
                data["symbol"] = symbol
                data["role"] = role
                cursor.execute(
                    """
                    INSERT INTO hedge_positions (
                        symbol, role, side, entry, opened_at, level, stop_loss,
                        breakthrough_price, promotion_breakthrough,
                        kill_armed, kill_armed_notified, kill_armed_at, kill_overrun, manual
                    ) VALUES (
                        %(symbol)s, %(role)s, %(side)s, %(entry)s, %(opened_at)s, %(level)s, %(stop_loss)s,
                        %(breakthrough_price)s, %(promotion_breakthrough)s,
                        %(kill_armed)s, %(kill_armed_notified)s, %(kill_armed_at)s, %(kill_overrun)s, %(manual)s
                    )
                    ON DUPLICATE KEY UPDATE
                        side                   = VALUES(side),
                        entry                  = VALUES(entry),
                        opened_at              = VALUES(opened_at),
                        level                  = VALUES(level),
                        stop_loss              = VALUES(stop_loss),
                        breakthrough_price     = VALUES(breakthrough_price),
                        promotion_breakthrough = VALUES(promotion_breakthrough),
                        kill_armed             = VALUES(kill_armed),
                        kill_armed_notified    = VALUES(kill_armed_notified),
                        kill_armed_at          = VALUES(kill_armed_at),
                        kill_overrun           = VALUES(kill_overrun),
                        manual                 = VALUES(manual);
                    """,
                    data,
                )
            conn.commit()
        finally:
            cursor.close()
            conn.close()

    def clear_positions(self, symbol: str) -> int:
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM hedge_positions WHERE symbol = %s", (symbol,))
            conn.commit()
            return cursor.rowcount
        finally:
            cursor.close()
            conn.close()
