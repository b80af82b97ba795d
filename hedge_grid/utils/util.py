import math
import threading
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from datetime import datetime, timezone

_sequence_lock = threading.Lock()
_sequence = 0

ORDER_ACTIONS = {"MAIN_OPEN", "MAIN_CLOSE", "HEDGE_OPEN", "HEDGE_CLOSE", "CANCEL_ALL"}


def ensure_price(value) -> float:
    """
    Validate a price coming from a feed or a caller.
    Non-numeric, non-finite and non-positive values are rejected.
    """
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid price {value!r}: not a number")
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"Invalid price {value!r}: must be finite and > 0")
    return price


def to_price(price: float, tick_size: float) -> float:
    """
    Round a price to the nearest multiple of the instrument tick size.
    """
    if not tick_size or tick_size <= 0:
        raise ValueError(f"Invalid tick_size {tick_size!r}")
    if not math.isfinite(price):
        raise ValueError(f"Invalid price {price!r}")
    tick = Decimal(str(tick_size))
    ticks = (Decimal(str(price)) / tick).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return float(ticks * tick)


def to_exchange_amount(amount: float, precision: int) -> float:
    step = Decimal("1").scaleb(-precision)  # 10^-precision
    return float(Decimal(str(amount)).quantize(step, rounding=ROUND_DOWN))


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def timemstamp_ms_to_date(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def generate_order_id(action: str) -> str:
    """
    Generate a unique client order ID composed of:
    - UTC timestamp in YYYYMMDDHHMMSSffffff format (timezone-aware)
    - action: one of ORDER_ACTIONS
    - sequence number to avoid duplicates within the same microsecond

    Example:
        20250625123456789012_HEDGE_OPEN_1
    """
    global _sequence
    if action not in ORDER_ACTIONS:
        raise ValueError(f"Invalid action '{action}'. Must be one of {ORDER_ACTIONS}.")

    with _sequence_lock:
        _sequence += 1
        seq = _sequence

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
    return f"{timestamp}_{action}_{seq}"


def mock_futures_order(symbol: str, side: str, position_side: str, price: float, qty: float, timestamp_ms: int = None, action: str = "MAIN_OPEN"):
    """
    Market order response shaped like a filled ccxt/binance futures order, used by paper trading.
    """
    ts = int(timestamp_ms or now_ms())
    order_id = generate_order_id(action)
    return {
        "info": {
            "symbol": symbol.replace("/", "").split(":")[0],
            "orderId": order_id,
            "clientOrderId": f"bt-{order_id}",
            "avgPrice": f"{price:.8f}",
            "origQty": f"{qty:.8f}",
            "executedQty": f"{qty:.8f}",
            "cumQuote": f"{qty * price:.8f}",
            "status": "FILLED",
            "type": "MARKET",
            "side": side.upper(),
            "positionSide": position_side,
            "updateTime": ts,
        },
        "id": order_id,
        "symbol": symbol,
        "type": "market",
        "side": side.lower(),
        "average": float(price),
        "amount": float(qty),
        "filled": float(qty),
        "status": "closed",
        "timestamp": ts,
    }


def fill_price_from_order(order, fallback: float) -> float:
    """
    Extract the average fill price from a ccxt order structure.
    """
    if not isinstance(order, dict):
        return fallback
    for value in (order.get("average"), order.get("price"), order.get("info", {}).get("avgPrice")):
        try:
            price = float(value)
        except (TypeError, ValueError):
            continue
        if price > 0:
            return price
    return fallback
