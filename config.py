import os

# ============================================================================
# CONFIGURATION CLASS
# ============================================================================

def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Centralized configuration with validation"""
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8080")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))

    # Core Constants
    MAX_ID_RETRIES: int = int(os.getenv("MAX_ID_RETRIES", "10"))

    # Validation
    MAX_URL_LENGTH: int = 2048
    ALLOWED_SCHEMES: tuple[str, ...] = ("http", "https")
    STRICT_URL_VALIDATION: bool = _env_flag("STRICT_URL_VALIDATION")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR: str | None = os.getenv("LOG_DIR")

    @classmethod
    def validate(cls):
        """Validate configuration on startup"""
        if not cls.BASE_URL:
            raise ValueError("BASE_URL must be set")
        if not cls.BASE_URL.startswith(("http://", "https://")):
            raise ValueError("BASE_URL must include http:// or https://")
        if cls.MAX_ID_RETRIES < 1 or cls.MAX_ID_RETRIES > 100:
            raise ValueError("MAX_ID_RETRIES must be between 1 and 100")
        if not 0 < cls.PORT < 65536:
            raise ValueError("PORT must be between 1 and 65535")

# ============================================================================
# SINGLETON INSTANCE & DERIVED CONSTANTS
# ============================================================================

config = Config()

# --- Expose class attributes as module constants for convenience ---
BASE_URL = config.BASE_URL
HOST = config.HOST
PORT = config.PORT
MAX_ID_RETRIES = config.MAX_ID_RETRIES
MAX_URL_LENGTH = config.MAX_URL_LENGTH
ALLOWED_SCHEMES = config.ALLOWED_SCHEMES
STRICT_URL_VALIDATION = config.STRICT_URL_VALIDATION
LOG_LEVEL = config.LOG_LEVEL
LOG_DIR = config.LOG_DIR
