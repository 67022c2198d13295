"""Chat assistant endpoints"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header
from ..config import settings
from ..models.itinerary import AIRecommendation, utcnow
from ..schemas.chat import (
    BudgetEstimate,
    BudgetEstimateRequest,
    ChatHistoryResponse,
    ChatRequest,
    ChatResponse,
    ChatStatusResponse,
    RecommendationRequest,
    RecommendationResponse,
    WeatherActivitiesRequest,
    WeatherActivitiesResponse,
)
from ..schemas.response import ErrorResponse
from ..services.budget_estimator import estimate_budget
from ..services.chat_service import (
    ChatService,
    ConversationStore,
    GeminiNotConfiguredError,
    conversation_store,
)
from ..tools.gemini_api import GeminiAPI, resolve_gemini_key
from ..utils.database import ItineraryStore, get_itinerary_store
from ..utils.errors import api_error, internal_error
from .itineraries import load_itinerary, save_document, to_document

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse}
}


def get_conversation_store() -> ConversationStore:
    return conversation_store


def get_gemini_key(x_gemini_key: Optional[str] = Header(None)) -> Optional[str]:
    return resolve_gemini_key(x_gemini_key)


def get_gemini(api_key: Optional[str] = Depends(get_gemini_key)) -> Optional[GeminiAPI]:
    """Gemini client for this request, or None when no usable key is available"""
    if not api_key:
        return None
    try:
        return GeminiAPI(api_key)
    except Exception as e:
        logger.error(f"❌ Failed to initialize Gemini: {type(e).__name__}: {e}")
        return None


def get_chat_service(
    conversations: ConversationStore = Depends(get_conversation_store),
    gemini: Optional[GeminiAPI] = Depends(get_gemini)
) -> ChatService:
    return ChatService(conversations, gemini)


def _missing(message: str):
    return api_error(400, "ValidationError", message)


def _not_configured(e: GeminiNotConfiguredError):
    return api_error(500, "InternalServerError", str(e), {
        "hint": "Set GEMINI_API_KEY" + ("" if settings.is_production else " or send an x-gemini-key header")
    })


@router.post("", response_model=ChatResponse, responses=ERROR_RESPONSES)
@router.post("/", response_model=ChatResponse, responses=ERROR_RESPONSES, include_in_schema=False)
async def chat(request: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """
    Reply to a chat message

    Falls back to a rule-based answer when Gemini is not configured or fails.
    """
    try:
        return await service.reply(request)
    except Exception as e:
        logger.error(f"❌ Chat failed: {type(e).__name__}: {e}")
        raise internal_error("Failed to process chat message", e)


@router.get("/status", response_model=ChatStatusResponse)
async def chat_status(api_key: Optional[str] = Depends(get_gemini_key)):
    """Whether a usable Gemini key is available to this client"""
    return ChatStatusResponse(
        configured=bool(api_key),
        model=settings.gemini_model,
        message="OK" if api_key else (
            "Gemini API key not configured"
            + ("" if settings.is_production else " (you can send x-gemini-key header in development)")
        )
    )


@router.post("/recommendations", response_model=RecommendationResponse, responses=ERROR_RESPONSES)
async def recommendations(
    request: RecommendationRequest,
    service: ChatService = Depends(get_chat_service),
    store: ItineraryStore = Depends(get_itinerary_store)
):
    """
    AI travel recommendations for a destination

    When itinerary_id is given the text is also appended to that itinerary's
    AI recommendation log.
    """
    if not request.destination or not request.destination.strip():
        raise _missing("Destination is required")

    if request.itinerary_id:
        await load_itinerary(store, request.itinerary_id)

    try:
        text = await service.recommendations(request)
    except GeminiNotConfiguredError as e:
        raise _not_configured(e)
    except Exception as e:
        logger.error(f"❌ Recommendations failed: {type(e).__name__}: {e}")
        raise internal_error("Failed to generate recommendations", e)

    generated_at = utcnow()
    itinerary = None
    if request.itinerary_id:
        # reload so edits made while the model was generating are kept
        itinerary = await load_itinerary(store, request.itinerary_id)
        document = to_document(itinerary)
        document["ai_recommendations"].append(
            AIRecommendation(type="recommendations", content=text, generated_at=generated_at).model_dump(mode="json")
        )
        await save_document(store, itinerary.id, document)
        logger.info(f"📝 Saved recommendations to itinerary {itinerary.id}")

    return RecommendationResponse(
        destination=request.destination,
        recommendations=text,
        generated_at=generated_at,
        itinerary_id=itinerary.id if itinerary is not None else None
    )


@router.post("/weather-activities", response_model=WeatherActivitiesResponse, responses=ERROR_RESPONSES)
async def weather_activities(request: WeatherActivitiesRequest, service: ChatService = Depends(get_chat_service)):
    """Activity suggestions for the given weather conditions"""
    if not request.destination or not request.weather:
        raise _missing("Destination and weather are required")

    try:
        suggestions = await service.weather_activities(request)
    except GeminiNotConfiguredError as e:
        raise _not_configured(e)
    except Exception as e:
        logger.error(f"❌ Weather activities failed: {type(e).__name__}: {e}")
        raise internal_error("Failed to generate weather-based suggestions", e)

    return WeatherActivitiesResponse(
        destination=request.destination,
        weather=request.weather,
        suggestions=suggestions,
        generated_at=utcnow()
    )


@router.post("/budget-estimate", response_model=BudgetEstimate, responses={400: {"model": ErrorResponse}})
async def budget_estimate(request: BudgetEstimateRequest, gemini: Optional[GeminiAPI] = Depends(get_gemini)):
    """
    Trip cost estimate per category

    Never fails because of the AI: a heuristic estimate is returned instead.
    """
    if not request.destination or not request.destination.strip():
        raise _missing("Destination is required")

    return await estimate_budget(request, gemini)


@router.get("/history/{user_id}", response_model=ChatHistoryResponse)
async def get_history(user_id: str, service: ChatService = Depends(get_chat_service)):
    """Stored messages for a user (empty when unknown or expired)"""
    return service.history(user_id)


@router.delete("/history/{user_id}")
async def clear_history(user_id: str, service: ChatService = Depends(get_chat_service)):
    """Forget a user's conversation"""
    service.clear_history(user_id)
    return {"message": "Conversation history cleared", "conversation_id": user_id}
