"""Photo/prompt match decision.

``decide`` is pure logic over a score vector. ``verify_image`` calls the
scorer and turns any scorer failure into an accept with zero confidence:
prompt matching is a soft nudge and must never block an upload.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from snapquest.exceptions import MatchScorerUnavailable
from snapquest.verification.scorer import MatchScorer

logger = logging.getLogger(__name__)

NEGATIVE_LABELS: tuple[str, ...] = ("random object", "unrelated image", "blank photo")
HIGH_CONFIDENCE = 0.25
ACCEPT_THRESHOLD = 0.15
MAX_LABELS = 8
SUGGESTION_COUNT = 3


class VerificationStatus(str, Enum):
    HIGH_CONFIDENCE = "high_confidence"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    UNAVAILABLE = "unavailable"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LabelScore:
    label: str
    score: float


@dataclass(frozen=True)
class VerificationResult:
    is_valid: bool
    confidence: float
    matched_keyword: str | None
    message: str
    status: VerificationStatus
    all_scores: list[LabelScore] = field(default_factory=list)


def candidate_labels(keywords: list[str], max_labels: int = MAX_LABELS) -> list[str]:
    """Labels sent to the scorer: the keywords followed by the fixed negatives."""
    return [*keywords[:max_labels], *NEGATIVE_LABELS]


def skipped_result() -> VerificationResult:
    return VerificationResult(
        is_valid=True,
        confidence=0.5,
        matched_keyword=None,
        message="Could not derive keywords for this challenge. Photo accepted.",
        status=VerificationStatus.SKIPPED,
    )


def unavailable_result() -> VerificationResult:
    return VerificationResult(
        is_valid=True,
        confidence=0.0,
        matched_keyword=None,
        message="Verification unavailable. Photo accepted.",
        status=VerificationStatus.UNAVAILABLE,
    )


def decide(
    keywords: list[str],
    scores: dict[str, float],
    high_confidence: float = HIGH_CONFIDENCE,
    threshold: float = ACCEPT_THRESHOLD,
    max_labels: int = MAX_LABELS,
) -> VerificationResult:
    """Turn a label score vector into an accept/reject decision.

    Only the positive candidates compete for the best match; a positive label
    missing from ``scores`` scores 0. Ties keep the earlier keyword.
    """
    if not keywords:
        return skipped_result()

    positives = [label for label in keywords[:max_labels] if label not in NEGATIVE_LABELS]
    best_label: str | None = None
    best_score = 0.0
    for label in positives:
        score = scores.get(label, 0.0)
        if best_label is None or score > best_score:
            best_label, best_score = label, score

    all_scores = sorted(
        (LabelScore(label, score) for label, score in scores.items()),
        key=lambda item: item.score,
        reverse=True,
    )
    percent = round(best_score * 100)

    if best_score >= high_confidence:
        return VerificationResult(
            is_valid=True,
            confidence=best_score,
            matched_keyword=best_label,
            message=f"Great! The photo matches the challenge ({percent}% confidence).",
            status=VerificationStatus.HIGH_CONFIDENCE,
            all_scores=all_scores,
        )
    if best_score >= threshold:
        return VerificationResult(
            is_valid=True,
            confidence=best_score,
            matched_keyword=best_label,
            message=f"Photo accepted ({percent}% match).",
            status=VerificationStatus.ACCEPTED,
            all_scores=all_scores,
        )

    suggestions = ", ".join(keywords[:SUGGESTION_COUNT])
    return VerificationResult(
        is_valid=False,
        confidence=best_score,
        matched_keyword=best_label,
        message=f"The photo does not match the challenge. Try shooting: {suggestions}",
        status=VerificationStatus.REJECTED,
        all_scores=all_scores,
    )


async def verify_image(
    scorer: MatchScorer,
    image: bytes,
    keywords: list[str],
    high_confidence: float = HIGH_CONFIDENCE,
    threshold: float = ACCEPT_THRESHOLD,
    max_labels: int = MAX_LABELS,
) -> VerificationResult:
    """Score ``image`` against ``keywords`` and decide."""
    if not keywords:
        return skipped_result()

    try:
        scores = await scorer.score(image, candidate_labels(keywords, max_labels))
    except MatchScorerUnavailable as exc:
        logger.warning("Verification fallback taken: %s", exc.detail)
        return unavailable_result()
    except Exception:
        logger.warning("Verification fallback taken: scorer raised", exc_info=True)
        return unavailable_result()

    return decide(keywords, scores, high_confidence, threshold, max_labels)
