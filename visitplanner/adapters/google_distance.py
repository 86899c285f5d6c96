"""
Google Distance Matrix API client for travel estimates.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence

import requests

from ..domain.exceptions import DistanceLookupError
from ..domain.models import TravelEstimate
from .distance import EstimatedDistanceProvider, same_location

logger = logging.getLogger(__name__)

# Small fixed pool; the API is rate limited per key
DEFAULT_MAX_PARALLEL_REQUESTS = 4
DEFAULT_TIMEOUT_SECONDS = 10.0


class GoogleDistanceProvider:
    """
    Travel estimates from the Google Distance Matrix API (driving).

    Lookups never fail: any timeout, network error or unusable answer is
    logged and replaced by the fallback estimate, flagged ``is_estimated``.
    """

    API_ENDPOINT = "https://maps.googleapis.com/maps/api/distancematrix/json"

    def __init__(
        self,
        api_key: str,
        fallback: Optional[EstimatedDistanceProvider] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_parallel_requests: int = DEFAULT_MAX_PARALLEL_REQUESTS,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Google Maps API key
            fallback: Estimator used when a lookup fails
            timeout: Per-request timeout in seconds
            max_parallel_requests: Worker count for matrix lookups
            session: Optional requests session (shared connection pool)
        """
        if max_parallel_requests < 1:
            raise ValueError("max_parallel_requests must be at least 1")
        self.api_key = api_key
        self.fallback = fallback or EstimatedDistanceProvider()
        self.timeout = timeout
        self.max_parallel_requests = max_parallel_requests
        self.session = session or requests.Session()

    def estimate(self, origin: str, destination: str) -> TravelEstimate:
        if same_location(origin, destination):
            return TravelEstimate.zero()

        try:
            return self._request(origin, destination)
        except DistanceLookupError as exc:
            logger.warning(
                "Distance lookup %r -> %r failed, using estimate: %s", origin, destination, exc
            )
            return self.fallback.estimate(origin, destination)

    def matrix(self, locations: Sequence[str]) -> List[List[TravelEstimate]]:
        """
        Build the pairwise matrix, one request per off-diagonal leg, on a
        bounded worker pool.
        """
        size = len(locations)
        result: List[List[TravelEstimate]] = [
            [TravelEstimate.zero() for _ in range(size)] for _ in range(size)
        ]
        legs = [(i, j) for i in range(size) for j in range(size) if i != j]
        if not legs:
            return result

        with ThreadPoolExecutor(max_workers=self.max_parallel_requests) as executor:
            futures = {
                leg: executor.submit(self.estimate, locations[leg[0]], locations[leg[1]])
                for leg in legs
            }
            for (i, j), future in futures.items():
                result[i][j] = future.result()

        estimated = sum(1 for i, j in legs if result[i][j].is_estimated)
        if estimated:
            logger.info("Travel matrix: %d of %d legs estimated", estimated, len(legs))

        return result

    def _request(self, origin: str, destination: str) -> TravelEstimate:
        params = {
            "origins": origin,
            "destinations": destination,
            "mode": "driving",
            "key": self.api_key,
        }

        try:
            response = self.session.get(self.API_ENDPOINT, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            raise DistanceLookupError(f"Request to distance API failed: {exc}") from exc
        except ValueError as exc:
            raise DistanceLookupError(f"Distance API returned invalid JSON: {exc}") from exc

        return self._parse_response(data)

    @staticmethod
    def _parse_response(data: Any) -> TravelEstimate:
        """
        Parse a Distance Matrix response for a single origin/destination.

        Response format:
        {
            "status": "OK",
            "rows": [{"elements": [{
                "status": "OK",
                "duration": {"value": 1260, "text": "21 mins"},
                "distance": {"value": 18400, "text": "18.4 km"}
            }]}]
        }
        """
        if not isinstance(data, dict):
            raise DistanceLookupError(f"Distance API returned {type(data).__name__}, expected an object")

        status = data.get("status")
        if status != "OK":
            message = data.get("error_message", "")
            raise DistanceLookupError(f"Distance API status {status} {message}".strip())

        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError, TypeError) as exc:
            raise DistanceLookupError("Distance API response has no elements") from exc

        if not isinstance(element, dict):
            raise DistanceLookupError("Distance API element is not an object")
        if element.get("status") != "OK":
            raise DistanceLookupError(f"No route found (element status {element.get('status')})")

        try:
            seconds = float(element["duration"]["value"])
            meters = float(element["distance"]["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise DistanceLookupError("Distance API element missing duration/distance") from exc

        if not (math.isfinite(seconds) and math.isfinite(meters)) or seconds < 0 or meters < 0:
            raise DistanceLookupError(f"Distance API returned unusable values {seconds!r}/{meters!r}")

        return TravelEstimate(
            duration_minutes=math.ceil(seconds / 60),
            distance_km=round(meters / 1000, 1),
            is_estimated=False,
        )
