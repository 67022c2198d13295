"""Itinerary CRUD, expenses, budget summary and calendar export"""
import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import ValidationError as PydanticValidationError
from ..models.itinerary import (
    Expense,
    ExpenseCreate,
    Itinerary,
    ItineraryBase,
    ItineraryCreate,
    ItineraryStatus,
    ItineraryUpdate,
    utcnow,
)
from ..schemas.response import ErrorResponse
from ..services.itinerary_export import itinerary_to_ics
from ..utils.database import ItineraryStore, get_itinerary_store
from ..utils.errors import internal_error, not_found, validation_error_detail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/itineraries", tags=["itineraries"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse}
}

STORED_ONLY_FIELDS = {"id", "created_at", "updated_at", "duration_days", "budget_summary", "budget_status"}


def to_document(model: ItineraryBase) -> Dict[str, Any]:
    """JSON document persisted by the store (no id, timestamps or derived fields)"""
    return model.model_dump(mode="json", exclude=STORED_ONLY_FIELDS)


def to_itinerary(record: Dict[str, Any]) -> Itinerary:
    return Itinerary.model_validate(record)


def serialize(itinerary: Itinerary) -> Dict[str, Any]:
    return itinerary.model_dump(mode="json")


async def load_itinerary(store: ItineraryStore, itinerary_id: str) -> Itinerary:
    """
    Fetch an itinerary or raise 404

    Raises:
        HTTPException: 404 if the id is unknown
    """
    record = await store.get(itinerary_id)
    if not record:
        raise not_found("Itinerary not found")
    return to_itinerary(record)


async def save_document(store: ItineraryStore, itinerary_id: str, document: Dict[str, Any]) -> Itinerary:
    """Re-validate a full document and persist it"""
    try:
        validated = ItineraryBase.model_validate(document)
    except PydanticValidationError as e:
        raise HTTPException(status_code=400, detail=validation_error_detail(e.errors()))

    record = await store.update(itinerary_id, to_document(validated))
    if not record:
        raise not_found("Itinerary not found")
    return to_itinerary(record)


@router.post("", status_code=201, responses=ERROR_RESPONSES)
@router.post("/", status_code=201, responses=ERROR_RESPONSES, include_in_schema=False)
async def create_itinerary(
    request: ItineraryCreate,
    store: ItineraryStore = Depends(get_itinerary_store)
):
    """
    Create an itinerary

    Returns:
        {"message", "itinerary"} with status 201
    """
    try:
        record = await store.create(to_document(request))
    except Exception as e:
        logger.error(f"❌ Failed to create itinerary: {e}")
        raise internal_error("Failed to create itinerary", e)

    itinerary = to_itinerary(record)
    logger.info(f"🗺️  Created itinerary {itinerary.id}: {itinerary.title}")
    return {"message": "Itinerary created", "itinerary": serialize(itinerary)}


@router.get("", responses=ERROR_RESPONSES)
@router.get("/", responses=ERROR_RESPONSES, include_in_schema=False)
async def list_itineraries(
    status: Optional[ItineraryStatus] = Query(None),
    store: ItineraryStore = Depends(get_itinerary_store)
):
    """All itineraries, newest first, optionally filtered by status"""
    try:
        records = await store.list(status=status)
    except Exception as e:
        logger.error(f"❌ Failed to list itineraries: {e}")
        raise internal_error("Failed to fetch itineraries", e)

    itineraries = [serialize(to_itinerary(record)) for record in records]
    return {"itineraries": itineraries, "total": len(itineraries)}


@router.get("/{itinerary_id}", responses=ERROR_RESPONSES)
async def get_itinerary(itinerary_id: str, store: ItineraryStore = Depends(get_itinerary_store)):
    """Single itinerary by id"""
    itinerary = await load_itinerary(store, itinerary_id)
    return {"itinerary": serialize(itinerary)}


@router.put("/{itinerary_id}", responses=ERROR_RESPONSES)
async def update_itinerary(
    itinerary_id: str,
    request: ItineraryUpdate,
    store: ItineraryStore = Depends(get_itinerary_store)
):
    """
    Partial update; the merged itinerary must satisfy every creation rule

    Raises:
        HTTPException: 400 if the merged itinerary is invalid, 404 if the id is unknown
    """
    existing = await load_itinerary(store, itinerary_id)

    changes = request.model_dump(mode="json", exclude_unset=True)
    document = to_document(existing)
    # budget keys merge so a new total keeps the currency and expense log
    if isinstance(changes.get("budget"), dict):
        changes["budget"] = {**document["budget"], **changes["budget"]}
    document.update(changes)

    itinerary = await save_document(store, itinerary_id, document)
    return {"message": "Itinerary updated", "itinerary": serialize(itinerary)}


@router.delete("/{itinerary_id}", responses=ERROR_RESPONSES)
async def delete_itinerary(itinerary_id: str, store: ItineraryStore = Depends(get_itinerary_store)):
    """Delete an itinerary"""
    deleted = await store.delete(itinerary_id)
    if not deleted:
        raise not_found("Itinerary not found")

    logger.info(f"🗑️  Deleted itinerary {itinerary_id}")
    return {"message": "Itinerary deleted", "deleted_id": itinerary_id}


@router.post("/{itinerary_id}/expenses", status_code=201, responses=ERROR_RESPONSES)
async def add_expense(
    itinerary_id: str,
    request: ExpenseCreate,
    store: ItineraryStore = Depends(get_itinerary_store)
):
    """Record an expense against the itinerary's budget"""
    existing = await load_itinerary(store, itinerary_id)

    expense = Expense(
        category=request.category,
        amount=request.amount,
        description=request.description,
        location=request.location,
        date=request.date or utcnow()
    )
    document = to_document(existing)
    document["budget"]["expenses"].append(expense.model_dump(mode="json"))

    itinerary = await save_document(store, itinerary_id, document)
    return {"message": "Expense added", "itinerary": serialize(itinerary)}


@router.get("/{itinerary_id}/budget", responses=ERROR_RESPONSES)
async def get_budget(itinerary_id: str, store: ItineraryStore = Depends(get_itinerary_store)):
    """Budget with spending summary and status"""
    itinerary = await load_itinerary(store, itinerary_id)
    return {
        "itinerary_id": itinerary.id,
        "budget": itinerary.budget.model_dump(mode="json"),
        "summary": itinerary.budget_summary.model_dump(),
        "status": itinerary.budget_status
    }


@router.get(
    "/{itinerary_id}/export/ical",
    response_class=Response,
    responses={200: {"content": {"text/calendar": {}}}, 404: {"model": ErrorResponse}}
)
async def export_ical(itinerary_id: str, store: ItineraryStore = Depends(get_itinerary_store)):
    """Download the itinerary as an .ics calendar"""
    itinerary = await load_itinerary(store, itinerary_id)
    return Response(
        content=itinerary_to_ics(itinerary),
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="itinerary-{itinerary.id}.ics"'}
    )
