"""Cookie-backed document store."""

import base64
import binascii
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import quote, unquote

import httpx

from checkin_wizard.domain.storage import CookieOptions, CookieWrite
from checkin_wizard.services.data_manager import DocumentStore

COOKIE_SIZE_LIMIT = 4096
_SECONDS_PER_DAY = 86_400

_logger = logging.getLogger(__name__)


class CookieResponse(Protocol):
    """The part of an HTTP response used to emit cookies."""

    def set_cookie(  # noqa: PLR0913
        self,
        key: str,
        value: str = "",
        max_age: int | None = None,
        path: str | None = "/",
        secure: bool = False,
        samesite: str | None = "lax",
    ) -> None:
        """Add a Set-Cookie header."""

    def delete_cookie(self, key: str, path: str = "/") -> None:
        """Add a Set-Cookie header that expires the cookie."""


@dataclass
class CookieStore(DocumentStore):
    """Stores serialized documents in an ``httpx.Cookies`` jar.

    The jar is seeded from the request cookies. Writes update the jar right
    away, so later reads within the same request see them, and are queued as
    ``CookieWrite`` entries until ``apply_to_response`` sends them back to the
    client.
    """

    cookies: httpx.Cookies
    max_bytes: int = COOKIE_SIZE_LIMIT
    default_options: CookieOptions = field(default_factory=CookieOptions)
    pending: list[CookieWrite] = field(default_factory=list)

    @classmethod
    def from_mapping(
        cls,
        cookies: Mapping[str, str],
        max_bytes: int = COOKIE_SIZE_LIMIT,
        options: CookieOptions | None = None,
    ) -> "CookieStore":
        """Create a store over a copy of the given request cookies."""
        return cls(
            cookies=httpx.Cookies(dict(cookies)),
            max_bytes=max_bytes,
            default_options=options or CookieOptions(),
        )

    def write(
        self,
        key: str,
        value: object,
        ttl_days: float = 1,
        options: CookieOptions | None = None,
    ) -> bool:
        """Serialize and store a value. Returns False instead of raising."""
        resolved = options or self.default_options
        try:
            if ttl_days < 0:
                return self.delete(key)
            max_age = int(ttl_days * _SECONDS_PER_DAY)
        except (TypeError, ValueError, OverflowError):
            _logger.exception("Invalid lifetime %r for cookie %s", ttl_days, key)
            return False
        try:
            encoded = _encode(value, obfuscate=resolved.obfuscate)
        except (TypeError, ValueError):
            _logger.exception("Error setting cookie %s", key)
            return False
        size = _cookie_size(key, encoded)
        if size > self.max_bytes:
            _logger.error(
                "Cookie %s not written: %s bytes exceeds the %s byte limit",
                key,
                size,
                self.max_bytes,
            )
            return False
        self.cookies.set(key, encoded)
        self.pending.append(
            CookieWrite(
                name=key,
                value=encoded,
                max_age=max_age,
                secure=resolved.secure,
                same_site=resolved.same_site,
            )
        )
        return True

    def read(self, key: str, options: CookieOptions | None = None) -> object | None:
        """Return the decoded value, the raw string if it is not JSON, or None."""
        raw = self.cookies.get(key)
        if raw is None:
            return None
        text = unquote(raw)
        if (options or self.default_options).obfuscate:
            try:
                text = unquote(base64.b64decode(text, validate=True).decode("ascii"))
            except (binascii.Error, UnicodeDecodeError):
                _logger.warning("Failed to deobfuscate cookie %s", key)
                return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    def delete(self, key: str) -> bool:
        """Remove a cookie from the jar and expire it on the client."""
        self.cookies.delete(key)
        self.pending.append(CookieWrite(name=key, value=None, max_age=0))
        return True

    def exists(self, key: str) -> bool:
        """Return whether a cookie with the given name is present."""
        return self.cookies.get(key) is not None

    def size_of(
        self, key: str, value: object, options: CookieOptions | None = None
    ) -> int:
        """Return the encoded ``name=value`` size in bytes."""
        resolved = options or self.default_options
        return _cookie_size(key, _encode(value, obfuscate=resolved.obfuscate))

    def can_write(
        self, key: str, value: object, options: CookieOptions | None = None
    ) -> bool:
        """Return whether the value fits within the cookie size limit."""
        try:
            return self.size_of(key, value, options) <= self.max_bytes
        except (TypeError, ValueError):
            return False

    def apply_to_response(self, response: CookieResponse) -> None:
        """Emit queued cookie changes, keeping only the last change per name."""
        latest = {change.name: change for change in self.pending}
        for change in latest.values():
            if change.is_deletion:
                response.delete_cookie(change.name, path="/")
                continue
            response.set_cookie(
                key=change.name,
                value=change.value or "",
                max_age=change.max_age,
                path="/",
                secure=change.secure,
                samesite=change.same_site,
            )
        self.pending.clear()


def _encode(value: object, obfuscate: bool) -> str:
    text = (
        value
        if isinstance(value, str)
        else json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    )
    if obfuscate:
        text = base64.b64encode(quote(text, safe="").encode("ascii")).decode("ascii")
    return quote(text, safe="")


def _cookie_size(key: str, encoded: str) -> int:
    return len(f"{key}={encoded}".encode())
