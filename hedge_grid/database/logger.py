import os
from datetime import datetime

from hedge_grid.database.base_database import BaseMySQLRepo


class Logger(BaseMySQLRepo):
    """
    Simple logger: prints to console in development, saves to DB otherwise.
    """

    def __init__(self, env: str = None):
        self.env = env or os.getenv("ENVIRONMENT", "development")
        if self.env != "development":
            super().__init__()
            self._ensure_table()

    def _ensure_table(self):
        self._execute_ddl(
            """
            CREATE TABLE IF NOT EXISTS logs (
                timestamp TEXT,
                level TEXT,
                message TEXT
            )
            """
        )

    def log(self, message: str, level: str = "INFO"):
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        if self.env == "development":
            print(f"[{ts}] [{level}] {message}")
            return
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            cursor.execute("INSERT INTO logs (timestamp, level, message) VALUES (%s, %s, %s)", (ts, level, message))
            conn.commit()
        finally:
            cursor.close()
            conn.close()
