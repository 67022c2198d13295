"""Trip cost estimates from Gemini, with a destination-aware heuristic fallback"""
import json
import logging
import math
import re
from typing import Dict, List, Optional
from ..schemas.chat import BudgetCategories, BudgetEstimate, BudgetEstimateRequest, BudgetTotals
from ..tools.gemini_api import GeminiAPI

logger = logging.getLogger(__name__)

CATEGORIES = ("transport", "hotel", "food", "activities", "other")

# Per-person per-day amounts in INR
STYLE_BASES = {
    "luxury": {"transport": 1200, "hotel": 6000, "food": 2000, "activities": 2000, "other": 800},
    "budget": {"transport": 400, "hotel": 1500, "food": 800, "activities": 600, "other": 300},
    "mid-range": {"transport": 700, "hotel": 3000, "food": 1200, "activities": 1000, "other": 500},
}

CITY_FACTORS = [
    (re.compile(r"mumbai|bombay"), 1.35),
    (re.compile(r"goa"), 1.20),
    (re.compile(r"delhi|new\s*delhi"), 1.05),
    (re.compile(r"bengaluru|bangalore"), 1.15),
    (re.compile(r"hyderabad"), 1.00),
    (re.compile(r"chennai"), 1.05),
    (re.compile(r"kolkata|calcutta"), 0.95),
    (re.compile(r"jaipur"), 0.90),
    (re.compile(r"manali|shimla|leh|ladakh"), 1.10),
    (re.compile(r"agra|varanasi|mathura"), 0.95),
    (re.compile(r"singapore"), 2.50),
    (re.compile(r"dubai|uae"), 2.00),
]

PEAK_SEASON = re.compile(r"peak|dec|jan|new\s*year")
RAINY_SEASON = re.compile(r"monsoon|rain")

SYSTEM_PROMPT = """You are TripTrackr's budget planner. Produce realistic, destination-aware trip cost estimates.
Return STRICT JSON ONLY (no prose, no code fences) with this shape:
{
  "currency": string,
  "per_day": {"transport": number, "hotel": number, "food": number, "activities": number, "other": number},
  "total_trip": {"transport": number, "hotel": number, "food": number, "activities": number, "other": number, "total": number},
  "assumptions": [string]
}"""

STRICT_SUFFIX = "\n\nReturn ONLY valid minified JSON. Do not include any prose or code fences."

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_BARE_OBJECT = re.compile(r"\{[\s\S]*\}")


def style_base(style: str) -> Dict[str, float]:
    normalized = (style or "").lower()
    if "lux" in normalized:
        return STYLE_BASES["luxury"]
    if "budget" in normalized:
        return STYLE_BASES["budget"]
    return STYLE_BASES["mid-range"]


def city_factor(destination: str) -> float:
    name = (destination or "").lower()
    for pattern, factor in CITY_FACTORS:
        if pattern.search(name):
            return factor
    return 1.0


def season_factor(season: Optional[str]) -> float:
    text = (season or "").lower()
    if PEAK_SEASON.search(text):
        return 1.15
    if RAINY_SEASON.search(text):
        return 0.95
    return 1.0


def _positive(value: float, default: float) -> float:
    """Zero or unusable values take the default; anything else is at least 1"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number == 0:
        return default
    return max(1, number)


def trip_totals(per_day: BudgetCategories, days: float, travelers: float) -> BudgetTotals:
    """total_trip = per_day × days × travelers for every category, plus the grand total"""
    multiplier = days * travelers
    amounts = {name: round(getattr(per_day, name) * multiplier) for name in CATEGORIES}
    return BudgetTotals(**amounts, total=sum(amounts.values()))


def heuristic_estimate(request: BudgetEstimateRequest, assumptions: List[str]) -> BudgetEstimate:
    """Style base × city factor × season factor, without any AI"""
    factor = city_factor(request.destination) * season_factor(request.season)
    per_day = BudgetCategories(**{
        name: round(amount * factor) for name, amount in style_base(request.style).items()
    })
    days = _positive(request.days, 3)
    travelers = _positive(request.travelers, 2)

    return BudgetEstimate(
        currency=request.currency,
        per_day=per_day,
        total_trip=trip_totals(per_day, days, travelers),
        assumptions=assumptions,
        source="heuristic"
    )


def parse_budget_json(text: str) -> Optional[Dict]:
    """
    Parse a model's JSON answer, tolerating code fences and surrounding prose

    Returns:
        The decoded object, or None when nothing parseable was found
    """
    if not text:
        return None

    candidates = [text.strip()]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    bare = _BARE_OBJECT.search(text)
    if bare:
        candidates.append(bare.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _number(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


def estimate_from_model(parsed: Dict, request: BudgetEstimateRequest) -> BudgetEstimate:
    """Keep the model's per-day figures and assumptions; recompute every total"""
    raw_per_day = parsed.get("per_day") if isinstance(parsed.get("per_day"), dict) else {}
    per_day = BudgetCategories(**{name: _number(raw_per_day.get(name)) for name in CATEGORIES})
    assumptions = parsed.get("assumptions")

    return BudgetEstimate(
        currency=str(parsed.get("currency") or request.currency),
        per_day=per_day,
        total_trip=trip_totals(per_day, _positive(request.days, 1), _positive(request.travelers, 1)),
        assumptions=[str(a) for a in assumptions[:10]] if isinstance(assumptions, list) else [],
        source=GeminiAPI.PROVIDER
    )


def _prompt(request: BudgetEstimateRequest) -> str:
    season = f"\nSeason: {request.season}" if request.season else ""
    return f"""{SYSTEM_PROMPT}

Destination: {request.destination}
Days: {request.days}
Travelers: {request.travelers}
Style: {request.style} (budget | mid-range | luxury)
Currency: {request.currency}{season}

Estimate realistic per-person PER-DAY costs (per_day) and total TRIP costs (total_trip) for ALL travelers.
Rules:
- All numbers MUST be numeric (no strings), currency = {request.currency}
- per_day are per-person per-day averages
- total_trip amounts MUST equal per_day * Days * Travelers (rounded to nearest integer)
- Provide 3-8 short assumptions capturing major drivers (season, city price level, style)"""


async def estimate_budget(request: BudgetEstimateRequest, gemini: Optional[GeminiAPI] = None) -> BudgetEstimate:
    """
    Estimate trip costs

    Uses Gemini when available, retrying once with a stricter JSON-only
    instruction; falls back to the heuristic on a missing key, unparseable
    output or any Gemini error.
    """
    if gemini is None:
        return heuristic_estimate(request, [
            "Destination-aware heuristic used because AI key is not configured",
            f"Destination: {request.destination}",
            f"Style: {request.style}",
            f"Season considered: {request.season}" if request.season else "Season not specified"
        ])

    prompt = _prompt(request)
    try:
        parsed = parse_budget_json(await gemini.generate_json(prompt, temperature=0.15))
        if parsed is None:
            logger.warning("⚠️  Budget estimate was not valid JSON, retrying with stricter instruction")
            parsed = parse_budget_json(await gemini.generate_json(prompt + STRICT_SUFFIX, temperature=0.0))
    except Exception as e:
        logger.error(f"❌ Budget estimate via Gemini failed: {type(e).__name__}: {e}")
        return heuristic_estimate(request, ["Destination-aware fallback estimate used due to AI error"])

    if parsed is None:
        return heuristic_estimate(request, ["Heuristic fallback used due to unparseable AI response"])

    return estimate_from_model(parsed, request)
