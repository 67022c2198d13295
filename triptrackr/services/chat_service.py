"""Travel chat assistant: Gemini replies with a rule-based fallback and per-user history"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from ..config import settings
from ..schemas.chat import (
    ChatHistoryResponse,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    RecommendationRequest,
    WeatherActivitiesRequest,
)
from ..tools.gemini_api import GeminiAPI

logger = logging.getLogger(__name__)

TRAVEL_SYSTEM_PROMPT = """You are TripTrackr, an intelligent travel planning assistant.

Goals:
- Provide accurate, practical travel guidance.
- Be concise but complete. Prefer bullet points and checklists.
- Ask 1-2 clarifying questions if the request is underspecified.

When responding:
- Format using Markdown. Use headings, bullet lists and tables when helpful.
- For itineraries, structure by day with travel time hints and local tips.
- For weather-sensitive advice, note contingencies and indoor alternatives.
- For budget queries, break down by category and show per-day and total when possible.
- End with a short Next steps section.

Keep tone friendly and professional."""

BUDGET_GUIDE = (
    "Here's a quick budget planning guide:\n"
    "- Budget: ₹1.5k–₹3k per person/day (local transport, hostels, simple meals)\n"
    "- Mid-range: ₹3k–₹6k per person/day (cabs/metros, 3★ hotels, restaurants)\n"
    "- Luxury: ₹6k–₹12k+ per person/day (private transport, 4–5★, fine dining)\n"
    "Tip: Book stays near transit hubs, eat where locals queue, and pre-book popular sights to avoid surge pricing."
)

WEATHER_GUIDE = (
    "For weather-aware planning: check the Weather page for current and 5-day trends.\n"
    "General rules: <10°C pack warm layers; >25°C carry sunscreen and hydrate; "
    "rain >70% pack a raincoat; strong winds avoid high viewpoints."
)

TOPIC_TIPS = [
    (re.compile(r"hotel|stay|accommodation"),
     "Use the Maps page search for “hotels near <area>” and sort by rating and recent reviews."),
    (re.compile(r"itinerary|plan|things to do|what to do|activities"),
     "Balance days: 1) landmark highlights, 2) local neighborhoods/food walk, 3) nature or day-trip. Keep 20% buffer time."),
    (re.compile(r"visa|entry|passport|document"),
     "Always verify visa/entry rules on the official government site for your nationality before booking."),
]

DEFAULT_TIP = "Tell me your destination, dates, budget style, and interests. I'll suggest an itinerary, packing list, and must-try food."


def rule_based_reply(text: str) -> str:
    """Keyword-driven answer used when Gemini is unavailable"""
    lowered = (text or "").lower()

    if re.search(r"budget|cost|price|expense", lowered):
        return BUDGET_GUIDE
    if re.search(r"weather|rain|temperature|forecast|hot|cold|wind", lowered):
        return WEATHER_GUIDE

    tips = [tip for pattern, tip in TOPIC_TIPS if pattern.search(lowered)]
    return "\n".join(tips or [DEFAULT_TIP])


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Conversation:
    def __init__(self):
        self.messages: List[ChatMessage] = []
        self.last_activity = _now()


class ConversationStore:
    """
    Per-user message history kept in process memory

    Holds at most max_messages per user; conversations idle longer than
    idle_timeout_seconds are dropped the next time the store is accessed.
    """

    def __init__(
        self,
        max_messages: Optional[int] = None,
        idle_timeout_seconds: Optional[int] = None
    ):
        self.max_messages = max_messages or settings.chat_history_max_messages
        self.idle_timeout = timedelta(seconds=idle_timeout_seconds or settings.chat_idle_timeout_seconds)
        self._conversations: Dict[str, Conversation] = {}

    def prune(self) -> int:
        """Drop idle conversations; returns how many were removed"""
        cutoff = _now() - self.idle_timeout
        stale = [user_id for user_id, c in self._conversations.items() if c.last_activity < cutoff]
        for user_id in stale:
            del self._conversations[user_id]
        if stale:
            logger.info(f"🧹 Pruned {len(stale)} idle conversation(s)")
        return len(stale)

    def get(self, user_id: str) -> Optional[Conversation]:
        self.prune()
        return self._conversations.get(user_id)

    def touch(self, user_id: str) -> Conversation:
        self.prune()
        conversation = self._conversations.setdefault(user_id, Conversation())
        conversation.last_activity = _now()
        return conversation

    def append(self, user_id: str, role: str, content: str) -> None:
        conversation = self.touch(user_id)
        conversation.messages.append(ChatMessage(role=role, content=content, timestamp=_now()))
        if len(conversation.messages) > self.max_messages:
            conversation.messages = conversation.messages[-self.max_messages:]

    def recent(self, user_id: str, count: int) -> List[ChatMessage]:
        conversation = self._conversations.get(user_id)
        if not conversation or count <= 0:
            return []
        return conversation.messages[-count:]

    def clear(self, user_id: str) -> bool:
        return self._conversations.pop(user_id, None) is not None


conversation_store = ConversationStore()


class GeminiNotConfiguredError(Exception):
    """Raised by AI-only features when no usable Gemini key is available"""


class ChatService:
    """Chat replies, recommendations and weather-based suggestions"""

    def __init__(self, conversations: ConversationStore, gemini: Optional[GeminiAPI] = None):
        self.conversations = conversations
        self.gemini = gemini

    @property
    def ai_enabled(self) -> bool:
        return self.gemini is not None

    async def reply(self, request: ChatRequest) -> ChatResponse:
        """
        Answer a chat message and record both turns

        Gemini gets the last few stored messages as context; any Gemini
        failure degrades to the rule-based reply.
        """
        user_id = request.user_id
        conversation = self.conversations.touch(user_id)
        history = [
            (message.role, message.content)
            for message in self.conversations.recent(user_id, settings.chat_context_messages)
        ]

        source = "rule-based"
        text = None
        if self.gemini is not None:
            try:
                text = await self.gemini.generate_text(
                    request.message,
                    system_prompt=TRAVEL_SYSTEM_PROMPT if request.context == "travel" else None,
                    history=history
                )
                source = GeminiAPI.PROVIDER
            except Exception as e:
                logger.warning(f"⚠️  Gemini error, using rule-based reply: {type(e).__name__}: {e}")

        if not text:
            text = rule_based_reply(request.message)
            source = "rule-based"

        self.conversations.append(user_id, "user", request.message)
        self.conversations.append(user_id, "assistant", text)

        return ChatResponse(
            response=text,
            conversation_id=user_id,
            timestamp=conversation.last_activity,
            source=source
        )

    def history(self, user_id: str) -> ChatHistoryResponse:
        conversation = self.conversations.get(user_id)
        if conversation is None:
            return ChatHistoryResponse(messages=[], conversation_id=user_id)
        return ChatHistoryResponse(
            messages=list(conversation.messages),
            conversation_id=user_id,
            last_activity=conversation.last_activity
        )

    def clear_history(self, user_id: str) -> None:
        self.conversations.clear(user_id)

    def _require_gemini(self) -> GeminiAPI:
        if self.gemini is None:
            raise GeminiNotConfiguredError("Gemini API key not configured")
        return self.gemini

    async def recommendations(self, request: RecommendationRequest) -> str:
        """Structured destination advice; requires Gemini"""
        gemini = self._require_gemini()

        lines = [f"As TripTrackr, provide detailed travel recommendations for {request.destination}.", ""]
        if request.weather:
            lines.append(f"Weather conditions: {request.weather}")
        if request.trip_duration:
            lines.append(f"Trip duration: {request.trip_duration}")
        if request.interests:
            lines.append(f"Interests: {', '.join(request.interests)}")
        if request.budget:
            lines.append(f"Budget: {request.budget}")
        lines.append("""
Please provide:
1. Top attractions and activities
2. Weather-appropriate clothing and gear recommendations
3. Best times to visit attractions
4. Local cuisine recommendations
5. Transportation tips
6. Budget-friendly options
7. Cultural considerations
8. Safety tips

Format your response in a clear, structured way.""")

        return await gemini.generate_text("\n".join(lines))

    async def weather_activities(self, request: WeatherActivitiesRequest) -> str:
        """Activity suggestions for given weather; requires Gemini"""
        gemini = self._require_gemini()

        def show(value, suffix):
            return f"{value}{suffix}" if value is not None else "unknown"

        prompt = f"""As TripTrackr, suggest activities for {request.destination} based on these weather conditions:

Weather: {request.weather}
Temperature: {show(request.temperature, "°C")}
Precipitation: {show(request.precipitation, "%")}
Wind Speed: {show(request.wind_speed, " km/h")}

Please provide:
1. Indoor activities (if weather is poor)
2. Outdoor activities (if weather is good)
3. Alternative plans for different weather scenarios
4. Packing recommendations
5. Timing suggestions for activities
6. Safety considerations

Format your response clearly and provide practical, actionable advice."""

        return await gemini.generate_text(prompt)
