from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class ExchangeConfig:
    futures_api_key: str
    futures_api_secret: str
    use_futures_testnet: bool = False
    enable_rate_limit: bool = True
    adjust_for_time_diff: bool = True
    ws_url: str = "wss://fstream.binance.com/ws"

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ExchangeConfig":
        testnet = bool(config.get("use_futures_testnet", False))
        key_name, secret_name = ("api_test_key_future", "api_test_secret_future") if testnet else ("api_future_key", "api_future_secret")
        return cls(
            futures_api_key=str(config.get(key_name) or ""),
            futures_api_secret=str(config.get(secret_name) or ""),
            use_futures_testnet=testnet,
            enable_rate_limit=bool(config.get("enable_rate_limit", True)),
            adjust_for_time_diff=bool(config.get("adjust_for_time_diff", True)),
            ws_url=str(config.get("ws_url") or cls.ws_url),
        )
