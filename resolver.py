import logging

import config
from core_logic import (
    URLValidator, ShortCodeCollisionException, ShortCodeExhaustedException,
    ShortCodeNotFoundException,
)
from encoding import encode
from fingerprint import fingerprint
from store import LinkStore

logger = logging.getLogger("url_shortener.resolver")

# NUL is rejected by URL validation, so a salted input never equals a real URL.
SALT_SEPARATOR = b"\x00"


class Resolver:
    """Generates short codes for URLs and resolves them back."""

    def __init__(self, store: LinkStore, max_retries: int = config.MAX_ID_RETRIES):
        self.store = store
        self.max_retries = max_retries

    def shorten(self, raw_url: str) -> str:
        """
        Returns the short code for `raw_url`, creating it on first use.

        The URL is keyed exactly as given. Raises InvalidURLException for an
        empty or malformed URL and ShortCodeExhaustedException if every
        salted candidate collides.
        """
        URLValidator.validate_url_structure(raw_url)

        existing = self.store.lookup_by_url(raw_url)
        if existing is not None:
            return existing

        url_bytes = raw_url.encode("utf-8")
        for attempt in range(self.max_retries + 1):
            candidate = encode(fingerprint(self._salted(url_bytes, attempt)))
            try:
                short_code = self.store.insert(candidate, raw_url)
            except ShortCodeCollisionException as e:
                logger.warning(
                    f"Short code {e.short_code} for {raw_url!r} (salt {attempt} of {self.max_retries}) "
                    f"collides with {e.existing_url!r}"
                )
                continue
            if short_code == candidate:
                logger.info(f"Created short code {short_code} for {raw_url}")
            return short_code

        logger.error(f"Could not find a free short code for {raw_url} after {self.max_retries} retries")
        raise ShortCodeExhaustedException(
            f"Failed to generate a unique short code after {self.max_retries} retries"
        )

    def resolve(self, short_code: str) -> str:
        url = self.store.lookup_by_code(short_code)
        if url is None:
            raise ShortCodeNotFoundException(short_code)
        return url

    @staticmethod
    def _salted(url_bytes: bytes, attempt: int) -> bytes:
        if attempt == 0:
            return url_bytes
        return url_bytes + SALT_SEPARATOR + str(attempt).encode("ascii")
