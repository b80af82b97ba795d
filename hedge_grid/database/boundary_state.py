from typing import Any, Dict, Optional

from hedge_grid.database.base_database import BaseMySQLRepo
from hedge_grid.dataclass.boundary import Boundary


class BoundaryState(BaseMySQLRepo):
    """
    One row per symbol: boundary prices plus the persisted runtime flags
    (cooldown_until, boundary_locked, last_hedge_close_price).
    """

    def __init__(self, **db_kwargs):
        super().__init__(**db_kwargs)
        self._execute_ddl(
            """
            CREATE TABLE IF NOT EXISTS `hedge_boundary` (
                `symbol` varchar(64) NOT NULL PRIMARY KEY,
                `top` decimal(18, 8) DEFAULT NULL,
                `bottom` decimal(18, 8) DEFAULT NULL,
                `extreme` decimal(18, 8) DEFAULT NULL,
                `last_update` bigint DEFAULT NULL,
                `cooldown_until` bigint NOT NULL DEFAULT 0,
                `boundary_locked` tinyint(1) NOT NULL DEFAULT 0,
                `last_hedge_close_price` decimal(18, 8) DEFAULT NULL,
                `update_date` datetime DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
            )
            """
        )

    def load_boundary(self, symbol: str) -> Optional[Dict[str, Any]]:
        conn = self._get_conn()
        cursor = conn.cursor(dictionary=True)
        try:
            cursor.execute("SELECT * FROM hedge_boundary WHERE symbol = %s", (symbol,))
            row = cursor.fetchone()
            if not row:
                return None
            for key in ("top", "bottom", "extreme", "last_hedge_close_price"):
                if row.get(key) is not None:
                    row[key] = float(row[key])
            return row
        finally:
            cursor.close()
            conn.close()

    def save_boundary(self, symbol: str, boundary: Boundary, runtime: Dict[str, Any]) -> None:
        data = {"symbol": symbol, **boundary.to_dict(), **runtime}
        data["boundary_locked"] = 1 if data.get("boundary_locked") else 0
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            cursor.execute(
                """
                INSERT INTO hedge_boundary (
                    symbol, top, bottom, extreme, last_update,
                    cooldown_until, boundary_locked, last_hedge_close_price
                ) VALUES (
                    %(symbol)s, %(top)s, %(bottom)s, %(extreme)s, %(last_update)s,
                    %(cooldown_until)s, %(boundary_locked)s, %(last_hedge_close_price)s
                )
                ON DUPLICATE KEY UPDATE
                    top                    = VALUES(top),
                    bottom                 = VALUES(bottom),
                    extreme                = VALUES(extreme),
                    last_update            = VALUES(last_update),
                    cooldown_until         = VALUES(cooldown_until),
                    boundary_locked        = VALUES(boundary_locked),
                    last_hedge_close_price = VALUES(last_hedge_close_price);
                """,
                data,
            )
            conn.commit()
        finally:
            cursor.close()
            conn.close()

    def clear_boundary(self, symbol: str) -> int:
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            cursor.execute("DELETE FROM hedge_boundary WHERE symbol = %s", (symbol,))
            conn.commit()
            return cursor.rowcount
        finally:
            cursor.close()
            conn.close()
