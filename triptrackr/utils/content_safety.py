"""Content safety checks for Gemini outputs"""
import logging
from typing import Any, Dict, List
from langchain_google_genai import HarmBlockThreshold, HarmCategory

logger = logging.getLogger(__name__)

FLAGGED_PROBABILITIES = ("MEDIUM", "HIGH")


class ContentSafetyError(Exception):
    """Raised when content fails safety checks"""
    def __init__(self, message: str, safety_ratings: List[Dict] = None):
        self.message = message
        self.safety_ratings = safety_ratings or []
        super().__init__(self.message)


def configure_safety_settings():
    """
    Gemini safety settings for the travel assistant

    Returns:
        Safety settings dictionary blocking medium and high probability harms
    """
    return {
        HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
        HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    }


def _enum_name(value: Any) -> str:
    return getattr(value, "name", str(value))


def check_content_safety(response: Any) -> bool:
    """
    Check if a Gemini response passes content safety filters

    Handles both LangChain messages (ratings in response_metadata) and
    google.generativeai responses (prompt_feedback / candidates).

    Args:
        response: LLM response object

    Returns:
        bool: True if safe

    Raises:
        ContentSafetyError: If content is flagged as unsafe
    """
    metadata = getattr(response, "response_metadata", None)
    if isinstance(metadata, dict):
        for rating in metadata.get("safety_ratings") or []:
            probability = _enum_name(rating.get("probability", "UNKNOWN"))
            if probability in FLAGGED_PROBABILITIES:
                raise ContentSafetyError(
                    f"Content flagged for {_enum_name(rating.get('category', 'UNKNOWN'))} with probability {probability}",
                    safety_ratings=metadata["safety_ratings"]
                )

    prompt_feedback = getattr(response, "prompt_feedback", None)
    block_reason = getattr(prompt_feedback, "block_reason", None)
    if block_reason:
        raise ContentSafetyError(f"Content blocked: {_enum_name(block_reason)}")

    for candidate in getattr(response, "candidates", None) or []:
        for rating in getattr(candidate, "safety_ratings", None) or []:
            probability = _enum_name(rating.probability)
            if probability in FLAGGED_PROBABILITIES:
                raise ContentSafetyError(
                    f"Content flagged for {_enum_name(rating.category)} with probability {probability}",
                    safety_ratings=[{
                        "category": _enum_name(rating.category),
                        "probability": probability
                    }]
                )

    return True


async def safe_llm_call(llm_func, *args, **kwargs):
    """
    Wrapper for LLM calls with automatic safety checking

    Args:
        llm_func: Async LLM function to call (e.g., llm.ainvoke)
        *args: Positional arguments for llm_func
        **kwargs: Keyword arguments for llm_func

    Returns:
        LLM response if safe

    Raises:
        ContentSafetyError: If the response is missing or fails safety checks

    Example:
        response = await safe_llm_call(llm.ainvoke, [HumanMessage(content=prompt)])
    """
    logger.debug("🔄 Making LLM API call...")
    response = await llm_func(*args, **kwargs)

    # Gemini returns nothing when a prompt is blocked outright
    if response is None:
        logger.error("❌ LLM returned None (blocked prompt, quota or invalid key)")
        raise ContentSafetyError("Empty response from model")

    check_content_safety(response)

    logger.debug("✅ LLM call completed successfully")
    return response
