"""Ordered provider fallback: try each upstream API until one answers"""
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised by provider wrappers when an upstream API answers with a failure"""
    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class ProvidersExhaustedError(Exception):
    """Raised when every provider in a chain failed or returned nothing"""
    def __init__(self, operation: str, errors: Dict[str, str]):
        self.operation = operation
        self.errors = errors
        tried = ", ".join(f"{name} ({error})" for name, error in errors.items()) or "none enabled"
        super().__init__(f"No provider could complete {operation}: {tried}")

    @property
    def all_empty(self) -> bool:
        """True when every provider answered but none had a result"""
        return bool(self.errors) and all(e == EMPTY_RESULT for e in self.errors.values())

    @property
    def any_empty(self) -> bool:
        """True when at least one provider answered with no result"""
        return EMPTY_RESULT in self.errors.values()


EMPTY_RESULT = "empty result"


def _is_empty(result: Any) -> bool:
    if result is None:
        return True
    if isinstance(result, (list, dict, str, tuple)) and len(result) == 0:
        return True
    return False


class FallbackChain:
    """
    Sequential provider chain

    Attempts are async callables tried in registration order. An attempt that
    raises, or whose result counts as empty, hands over to the next one.

    Example:
        chain = FallbackChain("geocode")
        chain.add("google", lambda: google.geocode(address), enabled=bool(key))
        chain.add("nominatim", lambda: nominatim.search(address))
        source, result = await chain.run()
    """

    def __init__(self, operation: str, is_empty: Callable[[Any], bool] = _is_empty):
        self.operation = operation
        self.is_empty = is_empty
        self._attempts: List[Tuple[str, Callable[[], Awaitable[Any]]]] = []

    def add(
        self,
        name: str,
        call: Callable[[], Awaitable[Any]],
        enabled: bool = True
    ) -> "FallbackChain":
        if enabled:
            self._attempts.append((name, call))
        return self

    @property
    def providers(self) -> List[str]:
        return [name for name, _ in self._attempts]

    async def run(self) -> Tuple[str, Any]:
        """
        Run the chain

        Returns:
            Tuple of (provider name, result) from the first provider that answered

        Raises:
            ProvidersExhaustedError: If no provider produced a non-empty result
        """
        errors: Dict[str, str] = {}

        for name, call in self._attempts:
            try:
                result = await call()
            except Exception as e:
                logger.warning(f"{self.operation}: provider '{name}' failed: {type(e).__name__}: {e}")
                errors[name] = str(e) or type(e).__name__
                continue

            if self.is_empty(result):
                logger.info(f"{self.operation}: provider '{name}' returned no results")
                errors[name] = EMPTY_RESULT
                continue

            if errors:
                logger.info(f"{self.operation}: answered by fallback provider '{name}'")
            return name, result

        raise ProvidersExhaustedError(self.operation, errors)
