"""
FeedSentry Input Validators
===========================

URL validation for feed endpoints and canonicalization of item links, so that
exact-link duplicate checks compare like with like.
"""

import re
from urllib.parse import unquote_plus, urlparse, urlunparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and sanitization utilities."""

    # Allowed schemes for feeds and article links
    ALLOWED_SCHEMES = {"http", "https"}

    # Query parameters that only carry click attribution
    TRACKING_PARAMS = {
        "fbclid",
        "gclid",
        "mc_cid",
        "mc_eid",
        "ref_src",
        "_hsenc",
        "_hsmi",
    }
    TRACKING_PREFIXES = ("utm_",)

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate and normalize a feed URL.

        Args:
            url: URL to validate

        Returns:
            Normalized URL

        Raises:
            ValidationError: If URL is invalid
        """
        parsed = cls._parse(url)

        return urlunparse(
            parsed._replace(
                scheme=parsed.scheme.lower(),
                netloc=parsed.netloc.lower(),
                path=parsed.path or "/",
                fragment="",
            )
        )

    @classmethod
    def canonicalize_link(cls, url: str) -> str:
        """Produce the canonical form of an article link.

        Scheme and host are lower-cased, the fragment is dropped and tracking
        query parameters are removed. Path and remaining query order are kept.

        Raises:
            ValidationError: If the link is not an absolute http(s) URL
        """
        parsed = cls._parse(url)

        # Surviving parameters are kept exactly as published
        query = "&".join(
            segment
            for segment in parsed.query.split("&")
            if not cls._is_tracking_param(unquote_plus(segment.split("=", 1)[0]))
        )

        return urlunparse(
            parsed._replace(
                scheme=parsed.scheme.lower(),
                netloc=parsed.netloc.lower(),
                path=parsed.path or "/",
                query=query,
                fragment="",
            )
        )

    @classmethod
    def _is_tracking_param(cls, key: str) -> bool:
        key = key.lower()
        return key in cls.TRACKING_PARAMS or key.startswith(cls.TRACKING_PREFIXES)

    @classmethod
    def _parse(cls, url: str):
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip()

        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise ValidationError(
                f"Invalid URL format: {str(e)}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be one of {sorted(cls.ALLOWED_SCHEMES)}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if re.search(r"\s", parsed.netloc):
            raise ValidationError(
                "URL hostname contains whitespace",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return parsed
