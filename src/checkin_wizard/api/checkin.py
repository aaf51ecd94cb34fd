"""Check-in wizard API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from checkin_wizard.api.models import (
    EditRequest,
    GroomingRequest,
    InventoryCompleteRequest,
    InventoryItemRequest,
    OwnerInfoRequest,
    PetHealthRequest,
    PetInfoRequest,
    ScheduleEntryRequest,
    ScheduleItemUpdateRequest,
    TermsRequest,
)
from checkin_wizard.containers import AppContainer, WizardSession, build_session
from checkin_wizard.domain.checkin import CheckInStatus, ScheduleKind
from checkin_wizard.domain.steps import Step
from checkin_wizard.services.navigation import NavigationOutcome
from checkin_wizard.services.submission import INCOMPLETE_MESSAGE, SubmissionError

router = APIRouter(prefix="/checkin", tags=["checkin"])

SAVE_FAILED_MESSAGE = "Your changes could not be saved."
ALREADY_CHECKED_IN_MESSAGE = "You already have an active check-in."


def get_session(
    request: Request, step: str | None = None, pet: int | None = None
) -> WizardSession:
    """Build the wizard session for the cookies of this request."""
    container: AppContainer = request.app.state.container
    return build_session(container, request.cookies, Step.from_query(step), pet)


def respond(  # noqa: PLR0913
    session: WizardSession,
    ok: bool = True,
    outcome: NavigationOutcome | None = None,
    message: str | None = None,
    document: dict[str, Any] | None = None,
    status_code: int | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render the current step and attach pending cookie changes."""
    if outcome is not None:
        session.projector.step = outcome.step
        document = document or outcome.submitted_document
    if document is None:
        document = session.data_manager.get_document()
    step = session.projector.step
    view = session.render(document)
    navigation = {
        "advanced": outcome.advanced if outcome else False,
        "popup": outcome.popup if outcome else None,
        "message": (outcome.message if outcome else None) or message,
        "errors": outcome.errors if outcome else [],
    }
    content: dict[str, Any] = {
        "ok": ok,
        "step": step.value,
        "stepName": step.slug,
        "document": document,
        "view": view,
        "navigation": navigation,
    }
    if extra:
        content.update(extra)
    if status_code is None:
        status_code = status.HTTP_200_OK if ok else status.HTTP_400_BAD_REQUEST
    response = JSONResponse(jsonable_encoder(content), status_code=status_code)
    session.store.apply_to_response(response)
    return response


def _saved(session: WizardSession, ok: bool) -> JSONResponse:
    return respond(session, ok=ok, message=None if ok else SAVE_FAILED_MESSAGE)


@router.get("")
async def open_wizard(
    phone: str | None = None, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    """Open the wizard, replacing a document left by another phone number."""
    if phone:
        document = session.data_manager.ensure_document_for_phone(phone)
    else:
        document = session.data_manager.create_initial_document()
    return respond(session, ok=document is not None, document=document)


@router.delete("")
async def clear_checkin(session: WizardSession = Depends(get_session)) -> JSONResponse:
    return _saved(session, session.data_manager.clear_document())


@router.get("/confirmation")
async def confirmation(phone: str | None = None) -> dict[str, object]:
    """Landing page for owners who already have an active check-in."""
    return {"phone": phone, "message": ALREADY_CHECKED_IN_MESSAGE}


@router.put("/owner")
async def update_owner(
    body: OwnerInfoRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    return _saved(session, session.data_manager.update_user_info(body.fields_set()))


@router.post("/pets")
async def add_pet(
    body: PetInfoRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    """Add a pet and select it."""
    ok = session.data_manager.add_pet(body.fields_set())
    document = session.data_manager.get_document()
    if ok and document:
        session.projector.view.selection.index = len(document["pets"]) - 1
    return _saved(session, ok)


@router.put("/pets/{index}")
async def update_pet(
    index: int, body: PetInfoRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    return _saved(session, session.data_manager.update_pet(index, body.fields_set()))


@router.delete("/pets/{index}")
async def remove_pet(
    index: int, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    session.projector.view.selection.index = None
    return _saved(session, session.data_manager.remove_pet(index))


@router.put("/pets/{index}/health")
async def update_pet_health(
    index: int, body: PetHealthRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    return _saved(
        session, session.data_manager.update_pet_health(index, body.fields_set())
    )


@router.post("/pets/{index}/schedule")
async def add_schedule_entry(
    index: int,
    body: ScheduleEntryRequest,
    session: WizardSession = Depends(get_session),
) -> JSONResponse:
    """Add a feeding or medication entry, optionally to every pet."""
    manager = session.data_manager
    if body.apply_to_all:
        ok = manager.add_feeding_or_medication_to_all(body.kind.value, body.entry())
    else:
        ok = manager.add_feeding_or_medication(index, body.kind.value, body.entry())
    return _saved(session, ok)


@router.put("/pets/{index}/schedule/{kind}/{item_index}")
async def update_schedule_entry(
    index: int,
    kind: ScheduleKind,
    item_index: int,
    body: ScheduleItemUpdateRequest,
    session: WizardSession = Depends(get_session),
) -> JSONResponse:
    return _saved(
        session,
        session.data_manager.update_feeding_medication_item(
            index, kind.value, item_index, body.fields_set()
        ),
    )


@router.delete("/pets/{index}/schedule/{kind}/{item_index}")
async def remove_schedule_entry(
    index: int,
    kind: ScheduleKind,
    item_index: int,
    session: WizardSession = Depends(get_session),
) -> JSONResponse:
    return _saved(
        session,
        session.data_manager.remove_feeding_medication_item(
            index, kind.value, item_index
        ),
    )


@router.post("/inventory")
async def add_inventory_item(
    body: InventoryItemRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    return _saved(session, session.data_manager.add_inventory_item(body.text))


@router.put("/inventory/complete")
async def set_inventory_complete(
    body: InventoryCompleteRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    return _saved(session, session.data_manager.set_inventory_complete(body.complete))


@router.put("/inventory/{index}")
async def update_inventory_item(
    index: int,
    body: InventoryItemRequest,
    session: WizardSession = Depends(get_session),
) -> JSONResponse:
    return _saved(session, session.data_manager.update_inventory_item(index, body.text))


@router.delete("/inventory/{index}")
async def remove_inventory_item(
    index: int, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    return _saved(session, session.data_manager.remove_inventory_item(index))


@router.post("/grooming")
async def confirm_grooming(
    body: GroomingRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    """Store grooming choices and report the next blocking popup, if any."""
    outcome = session.navigator.confirm_grooming(
        body.services, body.details, body.appointmentDay
    )
    return respond(session, outcome=outcome)


@router.post("/terms")
async def accept_terms(
    body: TermsRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    outcome = session.navigator.accept_terms(body.accepted)
    return respond(session, outcome=outcome)


@router.post("/next")
async def next_step(session: WizardSession = Depends(get_session)) -> JSONResponse:
    """Leave the current step. Leaving the inventory step submits the check-in."""
    outcome = await session.navigator.advance(session.projector.step)
    extra = {"submission": outcome.submission} if outcome.submission else None
    return respond(
        session,
        ok=outcome.advanced,
        outcome=outcome,
        status_code=status.HTTP_200_OK,
        extra=extra,
    )


@router.post("/prev")
async def previous_step(session: WizardSession = Depends(get_session)) -> JSONResponse:
    return respond(session, outcome=session.navigator.go_back(session.projector.step))


@router.post("/edit")
async def start_editing(
    body: EditRequest, session: WizardSession = Depends(get_session)
) -> JSONResponse:
    """Load a submitted check-in for editing and snapshot it."""
    manager = session.data_manager
    manager.create_initial_document()
    merged = manager.merge_session_data(body.sessionData) if body.sessionData else True
    enabled = merged and manager.enable_editing_mode(body.checkInId)
    return _saved(session, enabled)


@router.post("/edit/reset")
async def reset_edits(session: WizardSession = Depends(get_session)) -> JSONResponse:
    return _saved(session, session.data_manager.reset_to_original())


@router.delete("/edit")
async def stop_editing(session: WizardSession = Depends(get_session)) -> JSONResponse:
    return _saved(session, session.data_manager.disable_editing_mode())


@router.get("/edit/changes")
async def edit_changes(session: WizardSession = Depends(get_session)) -> JSONResponse:
    """Report whether and where the edited check-in differs from the original."""
    manager = session.data_manager
    return respond(
        session,
        extra={
            "editing": manager.is_editing_mode(),
            "changed": manager.has_data_changed(),
            "changes": manager.get_change_summary(),
        },
    )


@router.post("/submit")
async def submit_checkin(session: WizardSession = Depends(get_session)) -> JSONResponse:
    """Submit the whole check-in in a single backend call."""
    finalized = session.data_manager.finalize_checkin()
    if finalized is None:
        return respond(session, ok=False, message=INCOMPLETE_MESSAGE)
    try:
        result = await session.orchestrator.submit_legacy(finalized)
    except SubmissionError as exc:
        session.data_manager.update_document(
            {"status": CheckInStatus.IN_PROGRESS.value, "completedAt": None}
        )
        return respond(
            session,
            ok=False,
            message=exc.message,
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
    session.projector.step = Step.THANKS
    return respond(
        session,
        document=finalized,
        extra={"result": result.data, "message": result.message},
    )
