"""Itinerary database model"""
import math
from datetime import date, datetime, timezone
from typing import Any, List, Literal, Optional
from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

Currency = Literal["INR", "USD", "EUR", "GBP", "JPY", "CAD", "AUD"]
ItineraryStatus = Literal["planning", "active", "completed", "cancelled"]
ExpenseCategory = Literal["accommodation", "transportation", "food", "activities", "shopping", "other"]

SUPPORTED_CURRENCIES = ("INR", "USD", "EUR", "GBP", "JPY", "CAD", "AUD")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _finite_number(value: Any) -> Optional[float]:
    """Return value as a float if it is a finite number, else None"""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Destination(BaseModel):
    """A stop on the trip"""
    name: str = Field(..., min_length=1, max_length=200)
    coordinates: Optional[Coordinates] = None
    arrival_date: Optional[date] = None
    departure_date: Optional[date] = None
    accommodation: Optional[str] = None
    activities: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("coordinates", mode="before")
    @classmethod
    def drop_partial_coordinates(cls, v):
        """Coordinates are kept only when lat and lng are finite and in range"""
        if not isinstance(v, dict):
            return None if not isinstance(v, Coordinates) else v
        lat, lng = _finite_number(v.get("lat")), _finite_number(v.get("lng"))
        if lat is None or lng is None or abs(lat) > 90 or abs(lng) > 180:
            return None
        return {"lat": lat, "lng": lng}


class BudgetBreakdown(BaseModel):
    accommodation: float = 0
    transportation: float = 0
    food: float = 0
    activities: float = 0
    shopping: float = 0
    other: float = 0


class Expense(BaseModel):
    category: ExpenseCategory
    amount: float = Field(..., ge=0)
    description: Optional[str] = None
    date: datetime = Field(default_factory=utcnow)
    location: Optional[str] = None


class Budget(BaseModel):
    total: float = 0
    currency: Currency = "INR"
    breakdown: BudgetBreakdown = Field(default_factory=BudgetBreakdown)
    expenses: List[Expense] = Field(default_factory=list)

    @field_validator("total", mode="before")
    @classmethod
    def coerce_total(cls, v):
        """Non-numeric, non-finite and negative totals become 0"""
        number = _finite_number(v)
        if number is None or number < 0:
            return 0.0
        return number

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "INR"
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def spent(self) -> float:
        return sum(expense.amount for expense in self.expenses)


class AIRecommendation(BaseModel):
    type: str = "general"
    content: str
    generated_at: datetime = Field(default_factory=utcnow)


class BudgetSummary(BaseModel):
    total: float
    spent: float
    remaining: float
    percentage: float


class ItineraryBase(BaseModel):
    """Fields and invariants shared by creation, updates and stored records"""
    title: str = Field(..., min_length=1, max_length=200)
    start_date: date
    end_date: date
    destinations: List[Destination]
    budget: Budget = Field(default_factory=Budget)
    notes: str = ""
    status: ItineraryStatus = "planning"
    tags: List[str] = Field(default_factory=list)
    is_public: bool = False
    ai_recommendations: List[AIRecommendation] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("notes", mode="before")
    @classmethod
    def notes_default(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("budget", mode="before")
    @classmethod
    def budget_default(cls, v):
        return v if isinstance(v, (dict, Budget)) else {}

    @field_validator("destinations", mode="before")
    @classmethod
    def drop_unnamed_destinations(cls, v):
        """Ignore non-object entries and entries whose name is blank"""
        if not isinstance(v, list):
            return v
        kept = []
        for item in v:
            if isinstance(item, Destination):
                kept.append(item)
            elif isinstance(item, dict) and str(item.get("name") or "").strip():
                kept.append(item)
        return kept

    @field_validator("destinations")
    @classmethod
    def at_least_one_destination(cls, v):
        if not v:
            raise ValueError("Please provide at least one destination with a name")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class ItineraryCreate(ItineraryBase):
    """Request body for POST /api/itineraries"""

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Kerala backwaters",
                "start_date": "2026-12-20",
                "end_date": "2026-12-27",
                "destinations": [
                    {"name": "Kochi", "coordinates": {"lat": 9.9312, "lng": 76.2673}},
                    {"name": "Alleppey"}
                ],
                "budget": {"total": 60000, "currency": "INR"},
                "notes": "Houseboat on day 4"
            }
        }


class ItineraryUpdate(BaseModel):
    """Request body for PUT /api/itineraries/{id}; only provided fields change"""
    title: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    destinations: Optional[List[Any]] = None
    budget: Optional[Any] = None
    notes: Optional[str] = None
    status: Optional[ItineraryStatus] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None


class ExpenseCreate(BaseModel):
    """Request body for POST /api/itineraries/{id}/expenses"""
    category: ExpenseCategory
    amount: float = Field(..., ge=0)
    description: Optional[str] = None
    location: Optional[str] = None
    date: Optional[datetime] = None


class Itinerary(ItineraryBase):
    """Itinerary as stored and returned by the API"""
    id: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def id_as_string(cls, v):
        return str(v)

    @computed_field
    @property
    def duration_days(self) -> int:
        return abs((self.end_date - self.start_date).days)

    @computed_field
    @property
    def budget_summary(self) -> BudgetSummary:
        if not self.budget.total:
            return BudgetSummary(total=0, spent=0, remaining=0, percentage=0)
        spent = self.budget.spent
        return BudgetSummary(
            total=self.budget.total,
            spent=spent,
            remaining=self.budget.total - spent,
            percentage=round(spent / self.budget.total * 100, 2)
        )

    @computed_field
    @property
    def budget_status(self) -> str:
        if not self.budget.total:
            return "no-budget"
        remaining = self.budget.total - self.budget.spent
        if remaining < 0:
            return "over-budget"
        if remaining < self.budget.total * 0.1:
            return "low-budget"
        return "on-track"
