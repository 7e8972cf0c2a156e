import os
import re
import logging
from logging.handlers import RotatingFileHandler
from urllib.parse import urlsplit

import validators

# Import local modules/constants
import config

# --- LOGGING SETUP ---

def setup_logging() -> logging.Logger:
    """Configure structured logging with optional rotation"""
    logger = logging.getLogger("url_shortener")
    logger.setLevel(config.LOG_LEVEL)

    if not logger.handlers:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(config.LOG_LEVEL)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if config.LOG_DIR:
            os.makedirs(config.LOG_DIR, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(config.LOG_DIR, "app.log"),
                maxBytes=10_485_760,
                backupCount=5
            )
            file_handler.setLevel(config.LOG_LEVEL)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger

logger = setup_logging()

# --- CUSTOM EXCEPTIONS ---

class ShortenerException(Exception):
    """Base class for every failure the shortener reports to its callers."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

class InvalidURLException(ShortenerException):
    """The URL is empty or not syntactically valid."""

class ShortCodeNotFoundException(ShortenerException):
    def __init__(self, short_code: str):
        super().__init__(f"Short code not found: {short_code}")
        self.short_code = short_code

class ShortCodeCollisionException(ShortenerException):
    """A short code is already taken by a different URL."""

    def __init__(self, short_code: str, existing_url: str):
        super().__init__(f"Short code {short_code} is already in use")
        self.short_code = short_code
        self.existing_url = existing_url

class ShortCodeExhaustedException(ShortenerException):
    pass

# --- URL VALIDATION ---

_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')
_BAD_ESCAPE = re.compile(r'%(?![0-9A-Fa-f]{2})')
_SCHEME = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*:')
_BAD_HOST_CHARS = re.compile(r'[\s<>"{}|\\^`\x00-\x1f\x7f]')


class URLValidator:
    """Syntactic URL validation. The URL itself is never rewritten."""

    @staticmethod
    def validate_url_structure(url: str) -> str:
        if not isinstance(url, str) or not url:
            raise InvalidURLException("URL cannot be empty")

        if len(url) > config.MAX_URL_LENGTH:
            raise InvalidURLException(f"URL exceeds maximum length of {config.MAX_URL_LENGTH}")

        try:
            url.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidURLException("URL is not valid UTF-8") from None

        if _CONTROL_CHARS.search(url):
            raise InvalidURLException("URL contains control characters")

        if _BAD_ESCAPE.search(url):
            raise InvalidURLException("URL contains an invalid percent-escape")

        if url.startswith(":"):
            raise InvalidURLException("URL is missing a protocol scheme")

        if not _SCHEME.match(url):
            first_segment = re.split(r'[/?#]', url, maxsplit=1)[0]
            if ":" in first_segment:
                raise InvalidURLException("First path segment in URL cannot contain colon")

        try:
            parsed = urlsplit(url)
            # Accessing .port validates it
            parsed.port
        except ValueError as e:
            raise InvalidURLException(f"Invalid URL format: {e}") from e

        if parsed.hostname and _BAD_HOST_CHARS.search(parsed.hostname):
            raise InvalidURLException(f"Invalid character in host name: {parsed.hostname!r}")

        if config.STRICT_URL_VALIDATION:
            URLValidator.validate_url_strict(url, parsed.scheme)

        return url

    @staticmethod
    def validate_url_strict(url: str, scheme: str) -> None:
        if scheme.lower() not in config.ALLOWED_SCHEMES:
            raise InvalidURLException(f"URL scheme must be one of: {config.ALLOWED_SCHEMES}")
        if not validators.url(url):
            raise InvalidURLException("URL must be an absolute address with a valid host")
