"""The completion context a photo is submitted against.

A photo completes at most one thing: a challenge, an event challenge, or a
hunt task. The variant makes that exclusivity a type instead of a convention
over three nullable ids.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Union

from snapquest.exceptions import InvalidSubmissionTargetError


@dataclass(frozen=True)
class ChallengeTarget:
    challenge_id: uuid.UUID


@dataclass(frozen=True)
class EventTaskTarget:
    event_challenge_id: uuid.UUID


@dataclass(frozen=True)
class HuntTaskTarget:
    hunt_task_id: uuid.UUID


SubmissionTarget = Union[ChallengeTarget, EventTaskTarget, HuntTaskTarget, None]


def target_from_ids(
    challenge_id: uuid.UUID | None = None,
    event_challenge_id: uuid.UUID | None = None,
    hunt_task_id: uuid.UUID | None = None,
) -> SubmissionTarget:
    """Build the variant from optional ids; more than one id is rejected."""
    given = [v for v in (challenge_id, event_challenge_id, hunt_task_id) if v is not None]
    if len(given) > 1:
        msg = "A photo can complete only one of: challenge, event challenge, hunt task"
        raise InvalidSubmissionTargetError(msg)
    if challenge_id is not None:
        return ChallengeTarget(challenge_id)
    if event_challenge_id is not None:
        return EventTaskTarget(event_challenge_id)
    if hunt_task_id is not None:
        return HuntTaskTarget(hunt_task_id)
    return None


def target_columns(target: SubmissionTarget) -> dict[str, uuid.UUID | None]:
    """Column values for the photos table."""
    return {
        "challenge_id": target.challenge_id if isinstance(target, ChallengeTarget) else None,
        "event_challenge_id": target.event_challenge_id if isinstance(target, EventTaskTarget) else None,
        "hunt_task_id": target.hunt_task_id if isinstance(target, HuntTaskTarget) else None,
    }
