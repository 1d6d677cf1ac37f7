"""
Politeness Limiter - Randomized pacing of requests toward the target server.

Every request waits a delay drawn uniformly from a configurable range. The
delay is scaled by an adaptive backoff multiplier that grows when the server
answers 429/5xx and decays back toward 1.0 after a streak of successes.

Design Pattern: Adaptive Control System
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Optional

import structlog


@dataclass
class PolitenessConfig:
    """Configuration for the politeness limiter"""
    min_delay: float = 0.5   # Lower bound of the random delay (seconds)
    max_delay: float = 3.0   # Upper bound of the random delay (seconds)
    max_backoff: float = 8.0  # Cap for the backoff multiplier
    recovery_threshold: int = 10  # Success streak before relaxing the backoff
    recovery_factor: float = 0.9  # Multiplier applied when relaxing
    slowdown_factor_429: float = 2.0
    slowdown_factor_5xx: float = 1.5

    @classmethod
    def from_crawl_config(cls, config) -> "PolitenessConfig":
        return cls(min_delay=config.min_delay, max_delay=config.max_delay)


class PolitenessLimiter:
    """
    Randomized, adaptive delay inserted before each request.

    Key features:
    1. Uniform random delay within [min_delay, max_delay]
    2. Backoff multiplier on 429 and 5xx responses
    3. Gradual recovery after consecutive successes
    4. Never aborts a crawl; the multiplier is capped instead

    Example:
        >>> limiter = PolitenessLimiter()
        >>> await limiter.wait()  # Wait before next request
        >>> limiter.on_response(status_code=200)
        >>> limiter.on_response(status_code=429)
    """

    def __init__(self, config: Optional[PolitenessConfig] = None):
        """
        Initialize the limiter.

        Args:
            config: Politeness configuration (uses defaults if None)
        """
        self.config = config or PolitenessConfig()
        self.backoff = 1.0
        self.error_count = 0
        self.success_count = 0
        self.request_count = 0
        self.last_request_time: Optional[float] = None

        self.logger = structlog.get_logger(__name__)

        self.logger.debug(
            "politeness_limiter_initialized",
            min_delay=self.config.min_delay,
            max_delay=self.config.max_delay,
        )

    def next_delay(self) -> float:
        """Draw the next delay in seconds"""
        delay = random.uniform(self.config.min_delay, self.config.max_delay)
        return delay * self.backoff

    async def wait(self):
        """Sleep for a randomized delay before the next request"""
        delay = self.next_delay()

        self.logger.debug(
            "politeness_wait",
            delay=f"{delay:.2f}s",
            backoff=f"{self.backoff:.2f}",
        )

        await asyncio.sleep(delay)

        self.last_request_time = time.time()
        self.request_count += 1

    def on_response(self, status_code: int):
        """Feed a response status back into the backoff"""
        if status_code == 429 or status_code >= 500:
            self.on_error(status_code)
        else:
            self.on_success()

    def on_success(self):
        """Record a successful request and relax the backoff after a streak"""
        self.success_count += 1
        self.error_count = 0

        if self.backoff > 1.0 and self.success_count >= self.config.recovery_threshold:
            old_backoff = self.backoff
            self.backoff = max(1.0, self.backoff * self.config.recovery_factor)
            self.logger.info(
                "politeness_recovery",
                old_backoff=f"{old_backoff:.2f}",
                new_backoff=f"{self.backoff:.2f}",
            )

    def on_error(self, status_code: int):
        """
        Record a throttling or server error and slow down.

        Args:
            status_code: HTTP status code of the error
        """
        self.error_count += 1
        self.success_count = 0

        old_backoff = self.backoff

        if status_code == 429:
            self.backoff *= self.config.slowdown_factor_429
        elif status_code >= 500:
            self.backoff *= self.config.slowdown_factor_5xx

        self.backoff = min(self.config.max_backoff, self.backoff)

        if self.backoff != old_backoff:
            self.logger.warning(
                "politeness_slowdown",
                status_code=status_code,
                old_backoff=f"{old_backoff:.2f}",
                new_backoff=f"{self.backoff:.2f}",
            )

    def reset(self):
        """Reset the limiter to its initial state"""
        self.backoff = 1.0
        self.error_count = 0
        self.success_count = 0
        self.request_count = 0
        self.last_request_time = None

    def get_stats(self) -> dict:
        """
        Get limiter statistics.

        Returns:
            Dictionary with current statistics
        """
        return {
            "backoff": round(self.backoff, 2),
            "error_count": self.error_count,
            "success_count": self.success_count,
            "request_count": self.request_count,
            "config": {
                "min_delay": self.config.min_delay,
                "max_delay": self.config.max_delay,
            },
        }
