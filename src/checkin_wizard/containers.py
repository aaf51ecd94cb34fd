"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from checkin_wizard.adapters.backend_client import (
    CheckInBackendClient,
    HttpxCheckInBackendClient,
)
from checkin_wizard.adapters.cookie_store import CookieStore
from checkin_wizard.config import Settings, parse_same_site
from checkin_wizard.domain.steps import Step
from checkin_wizard.domain.storage import CookieOptions
from checkin_wizard.domain.views import PetSelection, WizardView
from checkin_wizard.services.data_manager import DataManager
from checkin_wizard.services.navigation import StepNavigator
from checkin_wizard.services.projections import ViewProjector
from checkin_wizard.services.reactivity import ReactivityBroker
from checkin_wizard.services.submission import SubmissionOrchestrator
from checkin_wizard.services.user_lookup import UserLookupService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    backend_client: CheckInBackendClient
    user_lookup_service: UserLookupService
    in_flight_submissions: set[str]
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class WizardSession:
    """Per-request wiring around the cookie sent by one client."""

    store: CookieStore
    broker: ReactivityBroker
    data_manager: DataManager
    projector: ViewProjector
    orchestrator: SubmissionOrchestrator
    navigator: StepNavigator

    def render(self, document: Mapping[str, object] | None = None) -> WizardView:
        """Render the current step from ``document`` or the stored one."""
        source = document if document is not None else self.data_manager.get_document()
        return self.projector.render(source)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    backend_client = HttpxCheckInBackendClient.create(
        base_url=resolved_settings.backend_base_url,
        csrf_token=resolved_settings.csrf_token,
    )

    async def close_resources() -> None:
        await backend_client.close()

    return AppContainer(
        settings=resolved_settings,
        backend_client=backend_client,
        user_lookup_service=UserLookupService(backend_client),
        in_flight_submissions=set(),
        close_resources=close_resources,
    )


def cookie_options(settings: Settings) -> CookieOptions:
    return CookieOptions(
        secure=settings.cookie_secure,
        same_site=parse_same_site(settings.cookie_same_site),
        obfuscate=settings.cookie_obfuscate,
    )


def build_session(
    container: AppContainer,
    cookies: Mapping[str, str],
    step: Step,
    selected_pet: int | None = None,
) -> WizardSession:
    """Wire store, broker, managers and projections for one request."""
    settings = container.settings
    options = cookie_options(settings)
    store = CookieStore.from_mapping(
        cookies, max_bytes=settings.cookie_max_bytes, options=options
    )
    broker = ReactivityBroker(store=store, key=settings.cookie_name)
    data_manager = DataManager(
        store=store,
        cookie_name=settings.cookie_name,
        ttl_days=settings.cookie_ttl_days,
        options=options,
        max_pets=settings.max_pets,
        signal=broker,
    )
    projector = ViewProjector(
        step=step, view=WizardView(selection=PetSelection(selected_pet))
    )
    projector.attach(broker)
    broker.start()
    orchestrator = SubmissionOrchestrator(
        client=container.backend_client,
        data_manager=data_manager,
        in_flight=container.in_flight_submissions,
    )
    return WizardSession(
        store=store,
        broker=broker,
        data_manager=data_manager,
        projector=projector,
        orchestrator=orchestrator,
        navigator=StepNavigator(data_manager, orchestrator),
    )
