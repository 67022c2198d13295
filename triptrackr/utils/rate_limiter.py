"""Rate limiter for API endpoints - in-memory sliding window per client IP"""
from datetime import datetime, timedelta
from collections import defaultdict
from typing import Dict, List


class InMemoryRateLimiter:
    """
    In-memory rate limiter with a per-IP sliding window.
    State lives in the process, so each worker counts separately.
    """

    def __init__(self, max_requests: int = 100, window_seconds: int = 15 * 60):
        """
        Initialize rate limiter.

        Args:
            max_requests: Max requests allowed per IP within the window (default: 100)
            window_seconds: Window length in seconds (default: 15 minutes)
        """
        self.max_requests = max_requests
        self.window = timedelta(seconds=window_seconds)
        self.requests: Dict[str, List[datetime]] = defaultdict(list)

    def _recent(self, client_ip: str, now: datetime) -> List[datetime]:
        cutoff = now - self.window
        recent = [req_time for req_time in self.requests.get(client_ip, []) if req_time > cutoff]
        if recent:
            self.requests[client_ip] = recent
        else:
            self.requests.pop(client_ip, None)
        return recent

    def is_allowed(self, client_ip: str) -> bool:
        """
        Check if request from client IP is allowed and record it if so.

        Args:
            client_ip: Client IP address

        Returns:
            True if request is allowed, False if rate limit exceeded
        """
        now = datetime.now()
        if len(self._recent(client_ip, now)) >= self.max_requests:
            return False

        self.requests[client_ip].append(now)
        return True

    def get_remaining(self, client_ip: str) -> int:
        """
        Get remaining requests for client IP in the current window.

        Args:
            client_ip: Client IP address

        Returns:
            Number of remaining requests
        """
        return max(0, self.max_requests - len(self._recent(client_ip, datetime.now())))

    def retry_after(self, client_ip: str) -> int:
        """Seconds until the oldest request in the window expires"""
        now = datetime.now()
        recent = self._recent(client_ip, now)
        if len(recent) < self.max_requests:
            return 0
        return max(1, int((recent[0] + self.window - now).total_seconds()) + 1)
