"""Gemini access for the chat assistant: free-text replies and JSON generation"""
import asyncio
import logging
import re
from typing import List, Optional, Tuple
import google.generativeai as genai
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from ..config import settings
from ..utils.content_safety import check_content_safety, configure_safety_settings, safe_llm_call

logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERNS = (
    re.compile(r"your_.*_here", re.IGNORECASE),
    re.compile(r"placeholder|changeme", re.IGNORECASE),
)
_GOOGLE_KEY_PATTERN = re.compile(r"^AIza[0-9A-Za-z_\-]{10,}$")


def is_valid_gemini_key(key: Optional[str]) -> bool:
    """
    Check that a key looks like a real Gemini key

    Rejects empty values and the placeholders shipped in sample env files.
    """
    if not key:
        return False
    key = str(key).strip()
    if not key or any(pattern.search(key) for pattern in _PLACEHOLDER_PATTERNS):
        return False
    return bool(_GOOGLE_KEY_PATTERN.match(key)) or len(key) >= 25


def resolve_gemini_key(header_key: Optional[str] = None) -> Optional[str]:
    """
    Pick the Gemini key for a request

    The configured key wins; outside production a client may supply its own
    through the x-gemini-key header.
    """
    if is_valid_gemini_key(settings.gemini_api_key):
        return settings.gemini_api_key
    if not settings.is_production and is_valid_gemini_key(header_key):
        return str(header_key).strip()
    return None


class GeminiAPI:
    """Thin wrapper around ChatGoogleGenerativeAI and google.generativeai"""

    PROVIDER = "gemini"

    def __init__(
        self,
        api_key: str,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None
    ):
        self.api_key = api_key
        self.model_name = model_name or settings.gemini_model
        self.temperature = settings.model_temperature if temperature is None else temperature

        self.llm = ChatGoogleGenerativeAI(
            model=self.model_name,
            temperature=self.temperature,
            top_k=40,
            top_p=0.9,
            max_output_tokens=2048,
            google_api_key=api_key,
            safety_settings=configure_safety_settings()
        )
        logger.info(f"🤖 Gemini configured: {self.model_name} (temp={self.temperature})")

    async def generate_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        history: Optional[List[Tuple[str, str]]] = None
    ) -> str:
        """
        Generate a free-text reply

        Args:
            prompt: The user's message or task prompt
            system_prompt: Optional persona instructions
            history: Earlier turns as (role, content) pairs, oldest first

        Returns:
            Reply text

        Raises:
            ContentSafetyError: If the reply is blocked or flagged
        """
        messages: List[BaseMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        for role, content in history or []:
            messages.append(AIMessage(content=content) if role == "assistant" else HumanMessage(content=content))
        messages.append(HumanMessage(content=prompt))

        response = await safe_llm_call(self.llm.ainvoke, messages)

        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content.strip()

    async def generate_json(self, prompt: str, temperature: float = 0.15) -> str:
        """
        Ask Gemini for a JSON-only answer

        Returns:
            Raw response text; parsing is left to the caller because models
            occasionally wrap the payload in prose or code fences
        """
        genai.configure(api_key=self.api_key)

        model = genai.GenerativeModel(
            model_name=self.model_name,
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                temperature=temperature,
                max_output_tokens=2048
            )
        )

        logger.info(f"📤 Sending JSON request to {self.model_name}...")
        response = await asyncio.to_thread(model.generate_content, contents=prompt)
        check_content_safety(response)

        return response.text or ""
