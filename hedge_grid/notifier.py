from typing import Optional

import requests

from hedge_grid.database.logger import Logger


class TelegramNotifier:
    """
    Plain-text notification sink. Delivery failures are logged, never raised.
    """

    def __init__(self, bot_token: str, chat_id: str, logger: Optional[Logger] = None, timeout: float = 10.0) -> None:
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.logger = logger or Logger()

    def notify(self, text: str) -> bool:
        if not self.bot_token or not self.chat_id:
            self.logger.log(f"[NOTIFY] {text}", level="INFO")
            return False

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        try:
            response = requests.post(url, json={"chat_id": self.chat_id, "text": text}, timeout=self.timeout)
            if response.status_code != 200:
                self.logger.log(f"[NOTIFY] telegram status={response.status_code} body={response.text[:200]}", level="ERROR")
                return False
            return True
        except requests.RequestException as e:
            self.logger.log(f"[NOTIFY] telegram error: {e}", level="ERROR")
            return False


class LogNotifier:
    """Notification sink that only writes to the logger (backtest)."""

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.logger = logger or Logger()

    def notify(self, text: str) -> bool:
        self.logger.log(f"[NOTIFY] {text}", level="INFO")
        return True
