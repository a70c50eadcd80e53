"""Environment-based configuration for the Apsara Live backend."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_LIVE_MODEL = "gemini-2.5-flash-native-audio-preview-12-2025"
DEFAULT_VOICE = "Aoede"
DEFAULT_ALLOWED_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:3001",
    "http://127.0.0.1:3001",
    "http://localhost:5500",
    "http://127.0.0.1:5500",
)


class ConfigurationError(Exception):
    """Raised when required configuration is missing."""


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value:
        try:
            return float(value)
        except ValueError:
            pass
    return default


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def _get_origins() -> tuple[str, ...]:
    value = os.getenv("ALLOWED_ORIGINS")
    if not value:
        return DEFAULT_ALLOWED_ORIGINS
    return tuple(origin.strip() for origin in value.split(",") if origin.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime settings. Build with :func:`load_settings`."""

    gemini_api_key: str = ""
    live_model: str = DEFAULT_LIVE_MODEL
    voice: str = DEFAULT_VOICE
    thinking_budget: int = 1024
    email_user: str = ""
    email_app_password: str = ""
    email_recipient: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    assistant_owner: str = "the owner"
    host: str = "0.0.0.0"
    port: int = 3000
    memory_file: Path = Path("data/memories.json")
    generated_images_dir: Path = Path("generated_images")
    shell_timeout_seconds: float = 15.0
    modality_switch_delay_seconds: float = 0.3
    save_debug_frames: bool = False
    debug_frames_dir: Path = Path("debug_frames")
    allowed_origins: tuple[str, ...] = field(default=DEFAULT_ALLOWED_ORIGINS)

    @property
    def email_configured(self) -> bool:
        return bool(self.email_user and self.email_app_password)

    def require_api_key(self) -> str:
        """Return the Gemini API key or raise ConfigurationError."""
        if not self.gemini_api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY is not set. Add it to the environment or .env file."
            )
        return self.gemini_api_key


def load_settings() -> Settings:
    """Load settings from the environment (and a .env file if present)."""
    load_dotenv()

    email_user = os.getenv("EMAIL_USER", "")
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        live_model=os.getenv("GEMINI_LIVE_MODEL", DEFAULT_LIVE_MODEL),
        voice=os.getenv("GEMINI_VOICE", DEFAULT_VOICE),
        thinking_budget=_get_int("GEMINI_THINKING_BUDGET", 1024),
        email_user=email_user,
        email_app_password=os.getenv("EMAIL_APP_PASSWORD", ""),
        email_recipient=os.getenv("EMAIL_RECIPIENT", email_user),
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=_get_int("SMTP_PORT", 587),
        assistant_owner=os.getenv("ASSISTANT_OWNER", "the owner"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=_get_int("PORT", 3000),
        memory_file=Path(os.getenv("MEMORY_FILE", "data/memories.json")),
        generated_images_dir=Path(os.getenv("GENERATED_IMAGES_DIR", "generated_images")),
        shell_timeout_seconds=_get_float("SHELL_TIMEOUT_SECONDS", 15.0),
        modality_switch_delay_seconds=_get_float("MODALITY_SWITCH_DELAY_SECONDS", 0.3),
        save_debug_frames=_get_bool("SAVE_DEBUG_FRAMES", False),
        debug_frames_dir=Path(os.getenv("DEBUG_FRAMES_DIR", "debug_frames")),
        allowed_origins=_get_origins(),
    )
