"""
Strategy Service Client
========================

Async HTTP client the simulation engine uses to request mitigation
strategies. Policy: one attempt, bounded by a timeout. Every failure
(network error, timeout, non-2xx status, malformed JSON, empty list) is
raised as StrategyServiceError so the engine can switch to its local
rule-based strategies.
"""

import asyncio
import logging
import os
from typing import Optional

import httpx

from agents.strategist import MitigationStrategy, parse_strategy_response
from models.exceptions import StrategyServiceError

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_URL = "http://localhost:8000/api/generate-strategies"
DEFAULT_TIMEOUT_SECONDS = 15.0


class StrategyClient:
    """
    POSTs strategy requests to the strategy service.

    An httpx.AsyncClient may be injected (shared connection pool, tests);
    otherwise one is created on first use and closed by aclose().
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or os.getenv("STRATEGY_SERVICE_URL", DEFAULT_STRATEGY_URL)
        self.timeout = float(
            timeout if timeout is not None
            else os.getenv("STRATEGY_SERVICE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)
        )
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def _post(self, request: dict) -> list[MitigationStrategy]:
        resp = await self.client.post(self.url, json=request)
        resp.raise_for_status()
        return parse_strategy_response(resp.json())

    async def fetch(self, request: dict) -> list[MitigationStrategy]:
        """
        Request strategies for a disruption.

        Raises:
            StrategyServiceError: any failure of the single attempt
        """
        try:
            strategies = await asyncio.wait_for(self._post(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StrategyServiceError(f"Strategy service timed out after {self.timeout:.0f}s") from e
        except httpx.HTTPStatusError as e:
            raise StrategyServiceError(
                f"Strategy service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise StrategyServiceError(f"Strategy service unreachable: {e}") from e
        except ValueError as e:
            raise StrategyServiceError(f"Strategy service sent malformed JSON: {e}") from e

        logger.info("[StrategyClient] Received %d strategies from %s", len(strategies), self.url)
        return strategies

    async def aclose(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
