# --- storefront/utils/api.py ---
from datetime import datetime, timezone


def _server_time():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def api_ok(message, data=None):
    return {
        "success": True,
        "message": message,
        **(data or {}),
        "server_time": _server_time(),
    }


def api_error(message, data=None):
    return {
        "success": False,
        "message": message,
        **(data or {}),
        "server_time": _server_time(),
    }
