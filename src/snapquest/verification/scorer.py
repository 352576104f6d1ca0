"""Image/label similarity scoring.

The production scorer calls a hosted CLIP zero-shot image classification
endpoint. Any failure surfaces as ``MatchScorerUnavailable`` so the
verification policy can fall back to accepting the photo.
"""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from snapquest.exceptions import MatchScorerUnavailable

logger = structlog.get_logger()


class MatchScorer(ABC):
    """Abstract image/label similarity capability."""

    @abstractmethod
    async def score(self, image: bytes, labels: list[str]) -> dict[str, float]:
        """Return a score in [0, 1] per label.

        Raises ``MatchScorerUnavailable`` when scores cannot be produced.
        """
        ...


class HuggingFaceClipScorer(MatchScorer):
    """Zero-shot classification through the Hugging Face inference API."""

    def __init__(
        self,
        url: str,
        api_token: str | None = None,
        timeout: float = 15.0,
        enabled: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.api_token = api_token
        self.timeout = timeout
        self.enabled = enabled
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def score(self, image: bytes, labels: list[str]) -> dict[str, float]:
        if not self.enabled:
            msg = "Match scorer disabled"
            raise MatchScorerUnavailable(msg)

        payload = {
            "inputs": {"image": base64.b64encode(image).decode("ascii")},
            "parameters": {"candidate_labels": labels},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, headers=self._headers(), json=payload)
                response.raise_for_status()
                body = response.json()
        except Exception as exc:
            # Transport errors, bad URLs, timeouts and undecodable bodies alike.
            logger.warning("match_scorer_request_failed", url=self.url, error=repr(exc))
            msg = f"Match scorer request failed: {exc}"
            raise MatchScorerUnavailable(msg) from exc

        return parse_scores(body)


def parse_scores(body: Any) -> dict[str, float]:  # noqa: ANN401
    """Parse a ``[{"label": ..., "score": ...}, ...]`` response body."""
    if not isinstance(body, list):
        msg = "Malformed scorer response: expected a list"
        raise MatchScorerUnavailable(msg)

    scores: dict[str, float] = {}
    for item in body:
        try:
            label = str(item["label"])
            value = float(item["score"])
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Malformed scorer response item: {item!r}"
            raise MatchScorerUnavailable(msg) from exc
        if not 0.0 <= value <= 1.0:
            msg = f"Score out of range for {label!r}: {value}"
            raise MatchScorerUnavailable(msg)
        scores[label] = value
    return scores
