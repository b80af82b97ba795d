from dotenv import load_dotenv, dotenv_values

load_dotenv()


def _cast_value(val: str):
    lower = val.lower()
    if lower in ("true", "false"):
        return lower == "true"
    if val.isdigit():
        return int(val)
    try:
        return float(val)
    except ValueError:
        return val


def load_config(path: str = None) -> dict:
    """
    Read a .env file into a dict with lower-cased keys and cast values.
    """
    raw_env = dotenv_values(path) if path else dotenv_values()
    return {key.lower(): _cast_value(value) for key, value in raw_env.items() if value is not None}


CONFIG = load_config()
