"""Enrichment-requested event and its delivery.

After a submission commits, an ``EnrichmentRequested`` event is handed to a
publisher. Delivery is fire-and-forget: failures are logged, never raised,
and never undo the stored result.
"""
from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol

import httpx

from operatorfit.matching import VentureMatch
from operatorfit.scoring import AssessmentResult

log = logging.getLogger(__name__)

TOP_MATCHES = 3


@dataclass(frozen=True)
class EnrichmentRequested:
    result_id: int
    applicant_name: str
    dimension_scores: dict[str, float]
    venture_fit_scores: dict[str, float]
    team_compatibility_scores: dict[str, float]
    primary_type: str
    secondary_type: str | None
    confidence_level: str
    top_venture_matches: list[dict[str, Any]] = field(default_factory=list)
    trap_analysis: dict[str, Any] = field(default_factory=dict)
    style_traits: dict[str, float] = field(default_factory=dict)
    top_traits: list[str] = field(default_factory=list)

    def payload(self) -> dict[str, Any]:
        return {"event": "enrichment_requested", **asdict(self)}


def build_event(result_id: int, applicant_name: str, result: AssessmentResult,
                matches: list[VentureMatch]) -> EnrichmentRequested:
    """Build the event from a scored result and its ranked matches."""
    top = [
        {
            "venture_id": m.venture_id,
            "venture_name": m.venture_name,
            "industry": m.industry,
            "overall_score": m.overall_score,
            "match_reasons": list(m.match_reasons),
            "concerns": list(m.concerns),
            "suggested_role": m.suggested_role,
        }
        for m in matches[:TOP_MATCHES]
    ]
    return EnrichmentRequested(
        result_id=result_id,
        applicant_name=applicant_name,
        dimension_scores=dict(result.dimension_scores),
        venture_fit_scores=dict(result.venture_fit_scores),
        team_compatibility_scores=dict(result.team_compatibility_scores),
        primary_type=result.primary_operator_type,
        secondary_type=result.secondary_operator_type,
        confidence_level=result.confidence_level,
        top_venture_matches=top,
        trap_analysis=asdict(result.trap_analysis),
        style_traits=dict(result.style_traits),
        top_traits=list(result.top_traits),
    )


class EnrichmentPublisher(Protocol):
    def publish(self, event: EnrichmentRequested) -> None: ...


class LogPublisher:
    """Used when no webhook is configured: the event is only logged."""

    def publish(self, event: EnrichmentRequested) -> None:
        log.info(
            "Enrichment requested for result %s (%s, %s); no webhook configured",
            event.result_id, event.applicant_name, event.primary_type,
        )


class WebhookPublisher:
    """POSTs the event as JSON to an HTTP endpoint."""

    def __init__(self, url: str, token: str | None = None, timeout: float = 10.0,
                 client: httpx.Client | None = None):
        self.url = url
        self.token = token
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def publish(self, event: EnrichmentRequested) -> None:
        try:
            if self._client is not None:
                resp = self._client.post(self.url, json=event.payload(), headers=self._headers(),
                                         timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.post(self.url, json=event.payload(), headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("Enrichment delivery failed for result %s: %s", event.result_id, exc)
            return
        log.info("Enrichment requested for result %s (HTTP %s)", event.result_id, resp.status_code)


def publisher_from_env() -> EnrichmentPublisher:
    url = os.environ.get("ENRICHMENT_WEBHOOK_URL", "").strip()
    if not url:
        return LogPublisher()
    token = os.environ.get("ENRICHMENT_WEBHOOK_TOKEN") or None
    try:
        timeout = float(os.environ.get("ENRICHMENT_TIMEOUT", "10"))
    except ValueError:
        log.warning("Ignoring invalid ENRICHMENT_TIMEOUT=%r", os.environ.get("ENRICHMENT_TIMEOUT"))
        timeout = 10.0
    return WebhookPublisher(url, token=token, timeout=timeout)
