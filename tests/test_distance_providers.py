"""
Tests for the estimated and Google-backed distance providers.
"""

import threading

import pytest
import requests

from visitplanner.adapters.distance import EstimatedDistanceProvider, build_distance_provider
from visitplanner.adapters.google_distance import GoogleDistanceProvider
from visitplanner.config import AppConfig


def ok_payload(seconds: int, meters: int) -> dict:
    return {
        "status": "OK",
        "rows": [{"elements": [{
            "status": "OK",
            "duration": {"value": seconds, "text": ""},
            "distance": {"value": meters, "text": ""},
        }]}],
    }


class FakeResponse:
    def __init__(self, payload=None, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Stands in for requests.Session; answers or raises per call."""

    def __init__(self, responder):
        self._responder = responder
        self._lock = threading.Lock()
        self.calls = []

    def get(self, url, params=None, timeout=None):
        with self._lock:
            self.calls.append({"url": url, "params": params, "timeout": timeout})
        return self._responder(params)


def fallback():
    return EstimatedDistanceProvider(known_travel_minutes={"breda": 25})


class TestEstimatedDistanceProvider:
    """Tests for the offline estimator."""

    def test_known_keyword(self):
        provider = EstimatedDistanceProvider(known_travel_minutes={"Breda": 25})

        estimate = provider.estimate("Tilburg", "Hoofdstraat 1, 4811 Breda")

        assert estimate.duration_minutes == 25
        assert estimate.distance_km == 30.0
        assert estimate.is_estimated

    def test_unknown_destination_uses_default(self):
        estimate = EstimatedDistanceProvider().estimate("Tilburg", "Maastricht")

        assert estimate.duration_minutes == 45
        assert estimate.distance_km == 50.0
        assert estimate.is_estimated

    def test_same_location_is_free(self):
        estimate = EstimatedDistanceProvider().estimate("Tilburg", " tilburg ")

        assert estimate.duration_minutes == 0
        assert not estimate.is_estimated

    def test_matrix_has_zero_diagonal(self):
        matrix = fallback().matrix(["Tilburg", "Breda", "Utrecht"])

        assert [matrix[i][i].duration_minutes for i in range(3)] == [0, 0, 0]
        assert matrix[0][1].duration_minutes == 25
        assert matrix[1][2].duration_minutes == 45


class TestGoogleDistanceProvider:
    """Tests for the Distance Matrix client."""

    def test_parses_successful_response(self):
        session = FakeSession(lambda params: FakeResponse(ok_payload(1261, 18449)))
        provider = GoogleDistanceProvider("key", fallback(), timeout=3, session=session)

        estimate = provider.estimate("Tilburg", "Breda")

        assert estimate.duration_minutes == 22
        assert estimate.distance_km == 18.4
        assert not estimate.is_estimated
        call = session.calls[0]
        assert call["url"] == GoogleDistanceProvider.API_ENDPOINT
        assert call["params"]["origins"] == "Tilburg"
        assert call["params"]["destinations"] == "Breda"
        assert call["params"]["mode"] == "driving"
        assert call["params"]["key"] == "key"
        assert call["timeout"] == 3

    def test_timeout_falls_back_to_estimate(self):
        def responder(params):
            raise requests.exceptions.Timeout("timed out")

        provider = GoogleDistanceProvider("key", fallback(), session=FakeSession(responder))

        estimate = provider.estimate("Tilburg", "Breda")

        assert estimate.duration_minutes == 25
        assert estimate.is_estimated

    @pytest.mark.parametrize(
        "response",
        [
            FakeResponse({"status": "REQUEST_DENIED", "error_message": "bad key"}),
            FakeResponse({"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]}),
            FakeResponse({"status": "OK", "rows": []}),
            FakeResponse(None),
            FakeResponse(ok_payload(60, 1000), status_code=500),
            FakeResponse([]),
            FakeResponse({"status": "OK", "rows": [{"elements": ["OK"]}]}),
            FakeResponse(ok_payload("n/a", 1000)),
            FakeResponse(ok_payload(600, {"km": 1})),
            FakeResponse(ok_payload(-60, 1000)),
        ],
    )
    def test_unusable_answers_fall_back(self, response):
        provider = GoogleDistanceProvider("key", fallback(), session=FakeSession(lambda params: response))

        estimate = provider.estimate("Tilburg", "Amsterdam")

        assert estimate.duration_minutes == 45
        assert estimate.is_estimated

    def test_matrix_survives_malformed_payloads(self):
        """A non-object body on some legs still yields a full matrix."""
        def responder(params):
            if params["destinations"] == "Breda":
                return FakeResponse([])
            return FakeResponse(ok_payload(1200, 20000))

        provider = GoogleDistanceProvider("key", fallback(), session=FakeSession(responder))

        matrix = provider.matrix(["Tilburg", "Breda", "Eindhoven"])

        assert matrix[0][1].duration_minutes == 25
        assert matrix[0][1].is_estimated
        assert matrix[0][2].duration_minutes == 20
        assert not matrix[0][2].is_estimated

    def test_same_location_makes_no_request(self):
        session = FakeSession(lambda params: pytest.fail("no request expected"))
        provider = GoogleDistanceProvider("key", fallback(), session=session)

        assert provider.estimate("Breda", "breda").duration_minutes == 0
        assert session.calls == []

    def test_matrix_requests_every_off_diagonal_leg(self):
        minutes = {("A", "B"): 600, ("B", "A"): 660, ("A", "C"): 1200, ("C", "A"): 1200,
                   ("B", "C"): 300, ("C", "B"): 360}

        def responder(params):
            seconds = minutes[(params["origins"], params["destinations"])]
            return FakeResponse(ok_payload(seconds, seconds * 10))

        session = FakeSession(responder)
        provider = GoogleDistanceProvider("key", fallback(), max_parallel_requests=2, session=session)

        matrix = provider.matrix(["A", "B", "C"])

        assert len(session.calls) == 6
        assert matrix[0][1].duration_minutes == 10
        assert matrix[1][0].duration_minutes == 11
        assert matrix[1][2].duration_minutes == 5
        assert matrix[2][2].duration_minutes == 0

    def test_parallelism_must_be_positive(self):
        with pytest.raises(ValueError):
            GoogleDistanceProvider("key", max_parallel_requests=0, session=FakeSession(lambda params: None))


class TestBuildDistanceProvider:
    """Tests for provider selection."""

    def test_defaults_to_estimate(self):
        provider = build_distance_provider(AppConfig())

        assert isinstance(provider, EstimatedDistanceProvider)

    def test_google_with_key(self):
        config = AppConfig(distance={"provider": "google", "api_key": "secret", "max_parallel_requests": 2})

        provider = build_distance_provider(config)

        assert isinstance(provider, GoogleDistanceProvider)
        assert provider.max_parallel_requests == 2

    def test_google_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "from-env")
        config = AppConfig(distance={"provider": "google"})

        provider = build_distance_provider(config)

        assert isinstance(provider, GoogleDistanceProvider)
        assert provider.api_key == "from-env"

    def test_google_without_key_uses_estimate(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
        config = AppConfig(distance={"provider": "google", "known_travel_minutes": {"Breda": 25}})

        provider = build_distance_provider(config)

        assert isinstance(provider, EstimatedDistanceProvider)
        assert provider.estimate("Tilburg", "Breda").duration_minutes == 25
