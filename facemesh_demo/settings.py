import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Capture
    camera_index: int = 0
    capture_width: int = Field(480, gt=0)
    capture_height: int = Field(480, gt=0)
    capture_fps: int = Field(30, gt=0)

    # Output surface (square, like the original canvas)
    canvas_size: int = Field(480, gt=0)

    # How long to wait for mediapipe to import before giving up
    load_timeout_s: float = Field(10.0, gt=0)

    jpeg_quality: int = Field(80, ge=10, le=100)

    # Logging
    log_level: str = "INFO"
    event_log: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000


def load_settings() -> Settings:
    """Build settings from FACEMESH_* environment variables."""
    return Settings(
        camera_index=int(os.getenv("FACEMESH_CAMERA", "0")),
        capture_width=int(os.getenv("FACEMESH_CAPTURE_WIDTH", "480")),
        capture_height=int(os.getenv("FACEMESH_CAPTURE_HEIGHT", "480")),
        capture_fps=int(os.getenv("FACEMESH_CAPTURE_FPS", "30")),
        canvas_size=int(os.getenv("FACEMESH_CANVAS_SIZE", "480")),
        load_timeout_s=float(os.getenv("FACEMESH_LOAD_TIMEOUT", "10")),
        jpeg_quality=int(os.getenv("FACEMESH_JPEG_QUALITY", "80")),
        log_level=os.getenv("FACEMESH_LOG_LEVEL", "INFO").upper(),
        event_log=_env_bool("FACEMESH_EVENT_LOG", False),
        host=os.getenv("FACEMESH_HOST", "0.0.0.0"),
        port=int(os.getenv("FACEMESH_PORT", "8000")),
    )
