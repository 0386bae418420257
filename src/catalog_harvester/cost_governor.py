"""
CostGovernor module for proactive throttling on API-reported query cost
"""

import logging
import random
import time
from typing import Any, Dict, Optional

from .config_loader import RateLimitConfig


logger = logging.getLogger(__name__)


class CostGovernor:
    """Delays the caller when the reported quota consumption crosses a threshold"""

    def __init__(self, rate_limits: RateLimitConfig):
        self.rate_limits = rate_limits

    def observe(self, cost: Optional[Dict[str, Any]]) -> bool:
        """
        Inspect a cost signal and sleep if consumption is at or above threshold

        Args:
            cost: Either the `extensions.cost` object or a bare throttleStatus mapping

        Returns:
            True if the caller was delayed, False otherwise
        """
        if not isinstance(cost, dict):
            return False

        status = cost.get('throttleStatus', cost)
        if not isinstance(status, dict):
            return False

        maximum = status.get('maximumAvailable')
        current = status.get('currentlyAvailable')
        if not isinstance(maximum, (int, float)) or not isinstance(current, (int, float)):
            return False
        if maximum <= 0:
            return False

        percentage_used = (maximum - current) / maximum * 100
        return self._delay_if_over_threshold(percentage_used, f"{current}/{maximum} available")

    def observe_call_limit(self, header_value: Optional[str]) -> bool:
        """
        Inspect a '<used>/<max>' call-limit header and sleep if over threshold

        Returns:
            True if the caller was delayed, False otherwise
        """
        if not header_value or '/' not in header_value:
            return False

        used_text, _, maximum_text = header_value.partition('/')
        try:
            used = float(used_text)
            maximum = float(maximum_text)
        except ValueError:
            logger.debug(f"Ignoring malformed call limit header: {header_value!r}")
            return False
        if maximum <= 0:
            return False

        percentage_used = used / maximum * 100
        return self._delay_if_over_threshold(percentage_used, f"call limit {header_value}")

    def random_delay_ms(self) -> int:
        return random.randint(self.rate_limits.min_delay_ms, self.rate_limits.max_delay_ms)

    def _delay_if_over_threshold(self, percentage_used: float, detail: str) -> bool:
        if percentage_used < self.rate_limits.threshold_percent:
            return False

        delay_ms = self.random_delay_ms()
        logger.info(
            f"Getting close to API limit, {percentage_used:.1f}% used ({detail}). "
            f"Waiting for {delay_ms} milliseconds."
        )
        time.sleep(delay_ms / 1000)
        return True
