"""Routing of a visitor by phone number before the wizard starts."""

import logging
from dataclasses import dataclass
from enum import StrEnum

import httpx

from checkin_wizard.adapters.backend_client import CheckInBackendClient
from checkin_wizard.domain.backend import UserLookupResult
from checkin_wizard.services.validation import sanitize_phone

_logger = logging.getLogger(__name__)


class LookupRoute(StrEnum):
    """Where a visitor goes after the phone lookup."""

    NEW_USER = "new_user"
    RESUME_EXISTING = "resume_existing"
    ALREADY_CHECKED_IN = "already_checked_in"


@dataclass(frozen=True)
class LookupDecision:
    """Lookup answer plus the wizard URL to continue with."""

    route: LookupRoute
    phone: str
    next_url: str
    lookup: UserLookupResult

    def prefill(self) -> dict[str, dict[str, dict[str, str]]]:
        """Owner fields known to the backend, shaped as a document partial."""
        info = {"phone": self.phone}
        if self.lookup.user_name:
            info["name"] = self.lookup.user_name
        if self.lookup.user_email:
            info["email"] = self.lookup.user_email
        if self.lookup.user_address:
            info["address"] = self.lookup.user_address
        return {"user": {"info": info}}


_ROUTE_PATHS = {
    LookupRoute.NEW_USER: "/checkin",
    LookupRoute.RESUME_EXISTING: "/checkin",
    LookupRoute.ALREADY_CHECKED_IN: "/checkin/confirmation",
}


@dataclass
class UserLookupService:
    """Decides between a new check-in, a pre-filled one or a confirmation."""

    client: CheckInBackendClient

    async def lookup(self, phone: str) -> LookupDecision:
        """Look up the owner. Transport errors propagate to the caller."""
        digits = sanitize_phone(phone)
        try:
            result = await self.client.check_user(digits)
        except httpx.HTTPError:
            _logger.exception("User lookup failed")
            raise
        route = route_for(result)
        next_url = str(httpx.URL(_ROUTE_PATHS[route], params={"phone": digits}))
        return LookupDecision(
            route=route, phone=digits, next_url=next_url, lookup=result
        )


def route_for(result: UserLookupResult) -> LookupRoute:
    if not result.user_exists:
        return LookupRoute.NEW_USER
    if result.has_check_in:
        return LookupRoute.ALREADY_CHECKED_IN
    return LookupRoute.RESUME_EXISTING
