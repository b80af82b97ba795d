# hedge_grid/database/base_database.py
import os
from dotenv import load_dotenv
from mysql.connector import pooling

load_dotenv()  # reads .env file from current or parent dir


class BaseMySQLRepo:
    """
    Base class providing pooled MySQL connections with config from .env
    """

    _pool = None

    def __init__(self, **db_kwargs):
        env_config = {
            "host": os.getenv("DB_HOST", "localhost"),
            "user": os.getenv("DB_USER", "root"),
            "password": os.getenv("DB_PASSWORD", ""),
            "database": os.getenv("DB_NAME", "hedge_grid"),
            "port": int(os.getenv("DB_PORT", 3306)),
        }

        # kwargs override (tests / dynamic config)
        env_config.update(db_kwargs)
        self.config = env_config

        # pool is shared by every repo
        if not BaseMySQLRepo._pool:
            BaseMySQLRepo._pool = pooling.MySQLConnectionPool(
                pool_name="hedgegrid_pool",
                pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
                pool_reset_session=True,
                **self.config,
            )

    def _get_conn(self):
        """Get pooled connection"""
        return BaseMySQLRepo._pool.get_connection()

    def _execute_ddl(self, *statements: str) -> None:
        conn = self._get_conn()
        cursor = conn.cursor()
        try:
            for stmt in statements:
                cursor.execute(stmt)
            conn.commit()
        finally:
            cursor.close()
            conn.close()
