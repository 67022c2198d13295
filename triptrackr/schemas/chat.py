"""Request and response schemas for the chat assistant"""
from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator


class ChatRequest(BaseModel):
    """Request body for POST /api/chat"""
    message: str = Field(..., max_length=4000, description="User message")
    user_id: str = Field(default="anonymous", max_length=200, description="Conversation key")
    context: str = Field(default="travel", description="Assistant persona")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Message is required")
        return v.strip()


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class ChatResponse(BaseModel):
    response: str
    conversation_id: str
    timestamp: datetime
    source: str = Field(..., description="gemini or rule-based")


class ChatHistoryResponse(BaseModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    conversation_id: str
    last_activity: Optional[datetime] = None


class ChatStatusResponse(BaseModel):
    configured: bool
    model: str
    message: str


class RecommendationRequest(BaseModel):
    """Request body for POST /api/chat/recommendations"""
    destination: Optional[str] = None
    weather: Optional[str] = None
    trip_duration: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    budget: Optional[str] = None
    itinerary_id: Optional[str] = Field(
        None,
        description="Append the result to this itinerary's AI recommendation log"
    )


class RecommendationResponse(BaseModel):
    destination: str
    recommendations: str
    generated_at: datetime
    itinerary_id: Optional[str] = None


class WeatherActivitiesRequest(BaseModel):
    destination: Optional[str] = None
    weather: Optional[str] = None
    temperature: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None


class WeatherActivitiesResponse(BaseModel):
    destination: str
    weather: str
    suggestions: str
    generated_at: datetime


class BudgetEstimateRequest(BaseModel):
    """Request body for POST /api/chat/budget-estimate"""
    destination: Optional[str] = None
    days: float = 3
    travelers: float = 2
    style: str = "mid-range"
    currency: str = "INR"
    season: Optional[str] = None


class BudgetCategories(BaseModel):
    transport: float = 0
    hotel: float = 0
    food: float = 0
    activities: float = 0
    other: float = 0


class BudgetTotals(BudgetCategories):
    total: float = 0


class BudgetEstimate(BaseModel):
    currency: str
    per_day: BudgetCategories
    total_trip: BudgetTotals
    assumptions: List[str] = Field(default_factory=list)
    source: str = Field(..., description="gemini or heuristic")
