import os
import sys
from pathlib import Path
from typing import List

APP_NAME = "ONYX"
DB_FILENAME = "onyx.db"

DEFAULT_BUSY_TIMEOUT_SECONDS = 30.0


def default_data_dir() -> Path:
    """
    Return the platform-specific per-user data directory for the app.

    - Windows: %LOCALAPPDATA%\\ONYX
    - macOS: ~/Library/Application Support/ONYX
    - Linux: $XDG_DATA_HOME/ONYX (defaults to ~/.local/share/ONYX)
    """
    home = Path.home()

    if sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local"))
        return base / APP_NAME

    if sys.platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME

    xdg_data_home = os.environ.get("XDG_DATA_HOME") or str(home / ".local" / "share")
    return Path(xdg_data_home) / APP_NAME


# PUBLIC_INTERFACE
def data_dir() -> Path:
    """Data directory from ONYX_DATA_DIR, falling back to the platform default."""
    raw = (os.getenv("ONYX_DATA_DIR") or "").strip()
    if raw:
        return Path(raw).expanduser()
    return default_data_dir()


def busy_timeout_seconds() -> float:
    """Seconds a connection waits on a locked database before failing (ONYX_DB_BUSY_TIMEOUT)."""
    raw = (os.getenv("ONYX_DB_BUSY_TIMEOUT") or "").strip()
    if not raw:
        return DEFAULT_BUSY_TIMEOUT_SECONDS
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return DEFAULT_BUSY_TIMEOUT_SECONDS


def log_level() -> str:
    return (os.getenv("ONYX_LOG_LEVEL") or "INFO").strip().upper()


def allowed_origins() -> List[str]:
    """
    Parse comma-separated ALLOWED_ORIGINS from env.

    Falls back to the Tauri webview origins and the Vite dev server when not set.
    """
    raw = (os.getenv("ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return [
            "tauri://localhost",
            "http://tauri.localhost",
            "http://localhost:1420",
            "http://127.0.0.1:1420",
        ]

    origins = [o.strip() for o in raw.split(",")]
    return [o for o in origins if o]


def allowed_origin_regex() -> str | None:
    """
    Return a regex for extra allowed origins.

    Env:
      ALLOWED_ORIGIN_REGEX: optional regex override.

    Default: any localhost port, so a front end started on another dev port still works.
    """
    raw = (os.getenv("ALLOWED_ORIGIN_REGEX") or "").strip()
    if raw:
        return raw
    return r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


def bind_address() -> tuple[str, int]:
    host = (os.getenv("HOST") or "127.0.0.1").strip()
    try:
        port = int((os.getenv("PORT") or "8000").strip())
    except ValueError:
        port = 8000
    return host, port
