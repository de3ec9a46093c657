"""
fee_estimator.py - Priority fee schedule from getRecentPrioritizationFees

Never raises: network, HTTP and parse failures all return the fallback schedule.

Tiers are fractions of the largest non-zero recent sample:
    low = 25%, medium = 50%, high = 75%, extreme = 100%
each floored to an int and raised to at least `min_fee_floor`.
Zero-fee samples are slots with no contention and are discarded.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx
from loguru import logger

from ...domain.fees import FeeEstimate
from ...errors import SchemaMismatchError


TIER_FRACTIONS = (0.25, 0.50, 0.75, 1.0)


@dataclass(frozen=True)
class FeeEstimatorConfig:
    """Fee policy. Units: micro-lamports per compute unit."""

    fallback_low: int = 10_000
    fallback_medium: int = 20_000
    fallback_high: int = 30_000
    fallback_extreme: int = 40_000
    min_fee_floor: int = 1_000
    http_timeout: float = 5.0

    def fallback(self) -> FeeEstimate:
        return FeeEstimate(
            low=self.fallback_low,
            medium=self.fallback_medium,
            high=self.fallback_high,
            extreme=self.fallback_extreme,
            source="fallback",
        )


def derive_tiers(samples: Sequence[int], min_fee_floor: int) -> Optional[FeeEstimate]:
    """
    Derive a schedule from raw per-slot fee samples.

    Returns None when no non-zero samples remain (caller falls back).
    """
    non_zero = sorted(int(s) for s in samples if int(s) > 0)
    if not non_zero:
        return None

    max_fee = non_zero[-1]
    low, medium, high, extreme = (
        max(math.floor(max_fee * frac), min_fee_floor) for frac in TIER_FRACTIONS
    )
    return FeeEstimate(low=low, medium=medium, high=high, extreme=extreme, source="network")


class FeeEstimator:
    def __init__(
        self,
        endpoint: str,
        config: Optional[FeeEstimatorConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint
        self.config = config or FeeEstimatorConfig()
        self._http: Optional[httpx.AsyncClient] = http_client

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.config.http_timeout)
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def estimate(
        self,
        reference_account: Optional[str] = None,
        endpoint: Optional[str] = None,
    ) -> FeeEstimate:
        """
        Estimate priority fees.

        Args:
            reference_account: account used as a market proxy (e.g. the pool
                being traded); scopes the fee samples when given.
            endpoint: RPC URL override; defaults to the estimator's endpoint.
        """
        url = endpoint or self.endpoint
        fallback = self.config.fallback()

        try:
            samples = await self._fetch_samples(url, reference_account)
        except httpx.TimeoutException:
            logger.warning(f"FEE_ESTIMATE | timeout | using fallback={fallback.as_dict()}")
            return fallback
        except Exception as e:
            logger.error(
                f"FEE_ESTIMATE | error | {type(e).__name__}: {e} | using fallback={fallback.as_dict()}"
            )
            return fallback

        estimate = derive_tiers(samples, self.config.min_fee_floor)
        if estimate is None:
            logger.info(f"FEE_ESTIMATE | no non-zero samples | n={len(samples)} | using fallback")
            return fallback

        logger.debug(
            f"FEE_ESTIMATE | n={len(samples)} | account={reference_account or '-'} | {estimate.as_dict()}"
        )
        return estimate

    async def _fetch_samples(self, url: str, reference_account: Optional[str]) -> List[int]:
        params: List[Any] = []
        if reference_account is not None:
            params.append([reference_account])

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getRecentPrioritizationFees",
            "params": params,
        }

        client = await self._get_http()
        response = await client.post(url, json=payload)
        response.raise_for_status()
        return _parse_samples(response.json())


def _parse_samples(data: Dict[str, Any]) -> List[int]:
    if not isinstance(data, dict):
        raise SchemaMismatchError(f"unexpected response type: {type(data).__name__}")
    if data.get("error"):
        raise SchemaMismatchError(f"rpc error: {data['error']}")

    result = data.get("result")
    if not isinstance(result, list):
        raise SchemaMismatchError(f"unexpected getRecentPrioritizationFees result: {result!r}")

    samples: List[int] = []
    for item in result:
        if not isinstance(item, dict) or "prioritizationFee" not in item:
            raise SchemaMismatchError(f"malformed fee sample: {item!r}")
        samples.append(int(item["prioritizationFee"]))
    return samples
