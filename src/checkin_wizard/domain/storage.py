"""Domain models for client cookie storage."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CookieOptions:
    """Attributes applied when a cookie is written.

    ``obfuscate`` is a reversible encoding that keeps the payload from being
    readable at a glance. It is not encryption.
    """

    secure: bool = False
    same_site: str | None = "lax"
    obfuscate: bool = False


@dataclass(frozen=True)
class CookieWrite:
    """A cookie change that still has to reach the client."""

    name: str
    value: str | None
    max_age: int
    secure: bool = False
    same_site: str | None = None

    @property
    def is_deletion(self) -> bool:
        return self.value is None
