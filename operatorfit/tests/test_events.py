from __future__ import annotations

import json

import httpx
import pytest

from operatorfit.events import (
    LogPublisher,
    WebhookPublisher,
    build_event,
    publisher_from_env,
)
from operatorfit.matching import VentureMatch
from operatorfit.scoring import AssessmentResult, TrapAnalysis


@pytest.fixture()
def result() -> AssessmentResult:
    return AssessmentResult(
        dimension_scores={"ownership": 32.0, "execution": 30.0, "hustle": 28.0,
                          "problemSolving": 21.0, "leadership": 20.0},
        venture_fit_scores={"operator": 4.3, "product": 3.0, "growth": 2.7, "vision": 2.0},
        team_compatibility_scores={"workingStyle": 4.0, "communication": 3.5, "conflictResponse": 3.0,
                                   "decisionMaking": 3.0, "collaboration": 3.5},
        style_traits={"action_bias": 1.0},
        trap_analysis=TrapAnalysis(score=12, level="elevated", flagged=True),
        primary_operator_type="Operational Leader",
        secondary_operator_type=None,
        confidence_level="Moderate",
        summary="",
        strengths=[],
        weaknesses=[],
        weakness_summary="",
        top_traits=["Ownership", "Execution", "Hustle"],
    )


def make_match(i: int) -> VentureMatch:
    return VentureMatch(
        venture_id=i, venture_name=f"Venture {i}", industry="Fintech", overall_score=90 - i,
        operator_type_score=100, dimension_score=70, compatibility_score=70,
        match_reasons=["General profile alignment with venture needs"], concerns=[],
        suggested_role="General Operator",
    )


class TestBuildEvent:
    def test_payload(self, result):
        event = build_event(7, "Ada Example", result, [make_match(i) for i in range(1, 6)])
        payload = event.payload()
        assert payload["event"] == "enrichment_requested"
        assert payload["result_id"] == 7
        assert payload["applicant_name"] == "Ada Example"
        assert payload["primary_type"] == "Operational Leader"
        assert payload["secondary_type"] is None
        assert payload["trap_analysis"] == {"score": 12, "level": "elevated", "flagged": True}
        assert [m["venture_id"] for m in payload["top_venture_matches"]] == [1, 2, 3]
        assert set(payload["top_venture_matches"][0]) == {
            "venture_id", "venture_name", "industry", "overall_score",
            "match_reasons", "concerns", "suggested_role",
        }
        json.dumps(payload)

    def test_fewer_than_three_matches(self, result):
        assert build_event(1, "Ada", result, []).top_venture_matches == []


class TestWebhookPublisher:
    def test_posts_json_with_token(self, result):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        WebhookPublisher("https://hooks.example/enrich", token="s3cret", client=client).publish(
            build_event(3, "Ada", result, []),
        )
        assert len(seen) == 1
        assert seen[0].headers["Authorization"] == "Bearer s3cret"
        assert json.loads(seen[0].content)["result_id"] == 3

    def test_no_token_no_auth_header(self, result):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        WebhookPublisher("https://hooks.example/enrich", client=client).publish(build_event(3, "Ada", result, []))
        assert "Authorization" not in seen[0].headers

    def test_http_error_is_logged_not_raised(self, result, caplog):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        with caplog.at_level("WARNING", logger="operatorfit.events"):
            WebhookPublisher("https://hooks.example/enrich", client=client).publish(
                build_event(9, "Ada", result, []),
            )
        assert "Enrichment delivery failed for result 9" in caplog.text

    def test_connection_error_is_logged_not_raised(self, result, caplog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        with caplog.at_level("WARNING", logger="operatorfit.events"):
            WebhookPublisher("https://hooks.example/enrich", client=client).publish(
                build_event(9, "Ada", result, []),
            )
        assert "refused" in caplog.text


class TestPublisherFromEnv:
    def test_log_publisher_without_url(self, monkeypatch):
        monkeypatch.delenv("ENRICHMENT_WEBHOOK_URL", raising=False)
        assert isinstance(publisher_from_env(), LogPublisher)

    def test_webhook_publisher(self, monkeypatch):
        monkeypatch.setenv("ENRICHMENT_WEBHOOK_URL", "https://hooks.example/enrich")
        monkeypatch.setenv("ENRICHMENT_WEBHOOK_TOKEN", "abc")
        monkeypatch.setenv("ENRICHMENT_TIMEOUT", "2.5")
        publisher = publisher_from_env()
        assert isinstance(publisher, WebhookPublisher)
        assert publisher.token == "abc"
        assert publisher.timeout == 2.5

    def test_invalid_timeout_falls_back(self, monkeypatch):
        monkeypatch.setenv("ENRICHMENT_WEBHOOK_URL", "https://hooks.example/enrich")
        monkeypatch.setenv("ENRICHMENT_TIMEOUT", "soon")
        assert publisher_from_env().timeout == 10.0

    def test_log_publisher_logs(self, result, caplog):
        with caplog.at_level("INFO", logger="operatorfit.events"):
            LogPublisher().publish(build_event(4, "Ada", result, []))
        assert "Enrichment requested for result 4" in caplog.text
