"""
GraphQLClient module for sending GraphQL queries with bounded retry and backoff
"""

import logging
import random
import time
import requests
from typing import Dict, Any, Optional
from datetime import datetime
from dataclasses import dataclass, field

from .config_loader import HarvesterConfig
from .cost_governor import CostGovernor
from .fetch_result import HarvestError


logger = logging.getLogger(__name__)


class RetryExhaustedError(HarvestError):
    """Raised when a retryable condition persists after all retry attempts"""

    def __init__(self, attempts: int, last_reason: str):
        self.attempts = attempts
        self.last_reason = last_reason
        super().__init__(f"Failed after {attempts} attempts. Last error: {last_reason}")


class UnclassifiedHTTPError(HarvestError):
    """Raised for non-OK statuses that are not worth retrying"""

    def __init__(self, status_code: int, body: str = ''):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Request failed with HTTP {status_code}: {body[:200]}")


class TransportError(HarvestError):
    """Raised on network failures and unparseable response bodies"""
    pass


@dataclass
class APIResponse:
    """Parsed GraphQL response wrapper"""
    raw_data: Dict[str, Any]
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    attempts: int = 1
    request_timestamp: datetime = field(default_factory=datetime.now)

    @property
    def data(self) -> Dict[str, Any]:
        data = self.raw_data.get('data')
        return data if isinstance(data, dict) else {}


class GraphQLClient:
    """HTTP client that posts raw GraphQL text and recovers from transient failures"""

    # 520 is an opaque platform fault seen in front of the Admin API
    RETRYABLE_STATUS_CODES = {429, 500, 520}

    THROTTLED_MARKER = 'throttled'
    CALL_LIMIT_HEADER = 'X-Shopify-Shop-Api-Call-Limit'

    def __init__(self, config: HarvesterConfig, cost_governor: Optional[CostGovernor] = None):
        self.endpoint = config.base_url
        self.timeout_seconds = config.timeout_seconds
        self.rate_limits = config.rate_limits
        self.retries = config.retries
        self.cost_governor = cost_governor or CostGovernor(config.rate_limits)
        self.token_header = config.access_token_header
        self.headers: Dict[str, str] = {
            config.access_token_header: config.access_token,
            'Content-Type': 'application/graphql',
            'Accept': 'application/json'
        }
        self.session: Optional[requests.Session] = None

    def send(self, query: str) -> APIResponse:
        """
        Post a GraphQL query, retrying rate-limited and transient failures

        Args:
            query: Raw GraphQL query text sent as the request body

        Returns:
            APIResponse with the parsed JSON body

        Raises:
            RetryExhaustedError: If retryable failures outlast the retry budget
            UnclassifiedHTTPError: For any other non-OK HTTP status
            TransportError: For network failures or a non-JSON body
        """
        if self.session is None:
            self.session = requests.Session()

        retry_count = 0
        request_timestamp = datetime.now()

        logger.info(f"Attempting call to {self.endpoint}")
        logger.debug(f"Headers: {self._redacted_headers()}")
        logger.debug(f"Attempting query: {query}")

        while True:
            try:
                response = self.session.post(
                    self.endpoint,
                    data=query.encode('utf-8'),
                    headers=self.headers,
                    timeout=self.timeout_seconds
                )
            except requests.exceptions.RequestException as e:
                logger.error(f"Request to {self.endpoint} failed: {e}")
                raise TransportError(f"Request to {self.endpoint} failed: {e}") from e

            status_code = response.status_code

            if status_code in self.RETRYABLE_STATUS_CODES:
                reason = f"HTTP {status_code}"
                logger.warning(f"Retryable response from {self.endpoint}: {reason}")
                retry_count = self._count_retry(retry_count, reason)
                self._sleep_backoff(retry_count)
                continue

            if not 200 <= status_code < 300:
                logger.error(f"Query failed ({status_code}): {response.text[:500]}")
                raise UnclassifiedHTTPError(status_code, response.text)

            try:
                payload = response.json()
            except ValueError as e:
                logger.error(f"Response from {self.endpoint} is not valid JSON: {e}")
                raise TransportError(f"Response from {self.endpoint} is not valid JSON: {e}") from e

            if not isinstance(payload, dict):
                raise TransportError(f"Unexpected JSON body type: {type(payload).__name__}")

            cost = self._extract_cost(payload)

            if self.is_throttled(payload):
                logger.warning("GraphQL query was throttled")
                retry_count = self._count_retry(retry_count, 'GraphQL throttled')
                if not self.cost_governor.observe(cost):
                    self._sleep_backoff(retry_count)
                continue

            errors = payload.get('errors')
            if errors:
                logger.warning(f"GraphQL response contained errors: {errors}")

            # Proactive throttle on a successful but near-limit response
            self.cost_governor.observe(cost)
            call_limit = response.headers.get(self.CALL_LIMIT_HEADER)
            if isinstance(call_limit, str):
                logger.debug(f"Checking call limit header {call_limit}")
                self.cost_governor.observe_call_limit(call_limit)

            return APIResponse(
                raw_data=payload,
                status_code=status_code,
                headers=dict(response.headers),
                attempts=retry_count + 1,
                request_timestamp=request_timestamp
            )

    @classmethod
    def is_throttled(cls, payload: Dict[str, Any]) -> bool:
        """Check whether the GraphQL errors report throttling (case-insensitive)"""
        errors = payload.get('errors')
        if not errors:
            return False
        if isinstance(errors, str):
            return cls.THROTTLED_MARKER in errors.lower()
        if not isinstance(errors, list):
            return False

        for error in errors:
            if isinstance(error, dict):
                extensions = error.get('extensions')
                code = extensions.get('code', '') if isinstance(extensions, dict) else ''
                text = f"{error.get('message', '')} {code}"
            else:
                text = str(error)
            if cls.THROTTLED_MARKER in text.lower():
                return True
        return False

    def backoff_delay_ms(self, retry_count: int) -> int:
        """
        Exponential backoff with jitter

        The first retry waits a random duration within [min_delay_ms, max_delay_ms];
        each later retry multiplies that draw by backoff_factor, capped at max_backoff_ms.
        """
        base = random.randint(self.rate_limits.min_delay_ms, self.rate_limits.max_delay_ms)
        delay = base * (self.retries.backoff_factor ** (retry_count - 1))
        return int(min(delay, max(self.retries.max_backoff_ms, self.rate_limits.min_delay_ms)))

    def close_connection(self) -> None:
        """
        Close HTTP session and release resources
        """
        if self.session:
            self.session.close()
            self.session = None

    def __enter__(self) -> 'GraphQLClient':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close_connection()

    def _count_retry(self, retry_count: int, reason: str) -> int:
        retry_count += 1
        if retry_count > self.retries.max_attempts:
            logger.error(f"Giving up after {retry_count} attempts: {reason}")
            raise RetryExhaustedError(retry_count, reason)
        return retry_count

    def _sleep_backoff(self, retry_count: int) -> None:
        delay_ms = self.backoff_delay_ms(retry_count)
        logger.info(f"Waiting for {delay_ms} milliseconds before retry {retry_count}.")
        time.sleep(delay_ms / 1000)

    @staticmethod
    def _extract_cost(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        extensions = payload.get('extensions')
        if not isinstance(extensions, dict):
            return None
        cost = extensions.get('cost')
        return cost if isinstance(cost, dict) else None

    def _redacted_headers(self) -> Dict[str, str]:
        return {key: ('***' if key == self.token_header else value)
                for key, value in self.headers.items()}
