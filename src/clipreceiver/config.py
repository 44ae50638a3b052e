import os
from pathlib import Path
from typing import Optional

import platformdirs
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from clipreceiver import APP_NAME

try:
    REPO_ROOT = Path(__file__).resolve().parents[2]
    env_file = REPO_ROOT / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file)
    else:
        load_dotenv()
except Exception:
    pass

DEFAULT_ADDRESS = "0.0.0.0"
DEFAULT_PORT = 8733
DEFAULT_MAX_BYTES = 64 * 1024 * 1024
RECEIVE_BUFFER_SIZE = 1024

PID_FILE_NAME = f"{APP_NAME}.pid"
PORT_FILE_NAME = f"{APP_NAME}.port"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


ENV_ADDRESS = os.getenv("CLIPRECV_ADDRESS", DEFAULT_ADDRESS)
ENV_PORT = _env_int("CLIPRECV_PORT", DEFAULT_PORT)
ENV_RANDOM_PORT = _env_flag("CLIPRECV_RANDOM_PORT")
ENV_MAX_BYTES = _env_int("CLIPRECV_MAX_BYTES", DEFAULT_MAX_BYTES)


def get_cache_dir() -> Path:
    override = os.getenv("CLIPRECV_CACHE_DIR")
    if override:
        path = Path(override).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path
    return Path(platformdirs.user_cache_dir(APP_NAME, ensure_exists=True))


def default_pid_file() -> Path:
    return get_cache_dir() / PID_FILE_NAME


def default_port_file() -> Path:
    return get_cache_dir() / PORT_FILE_NAME


class ReceiverSettings(BaseModel):
    """Validated runtime configuration of one receiver process."""
    address: str = DEFAULT_ADDRESS
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    random_port: bool = False
    pid_file: Path
    port_file: Path
    max_bytes: int = Field(default=DEFAULT_MAX_BYTES, ge=0)

    @property
    def size_limit(self) -> Optional[int]:
        return self.max_bytes or None
