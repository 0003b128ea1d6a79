"""Retry wait durations for failed declaration posts."""
from dataclasses import dataclass
from typing import Union

from .schema import ResponseEvent


@dataclass(frozen=True)
class RetryTimeouts:
    """Wait tiers in seconds."""
    small: float = 3
    medium: float = 30
    large: float = 180


DEFAULT_TIMEOUTS = RetryTimeouts()


def timeout_for_event(
    event: Union[ResponseEvent, str],
    timeouts: RetryTimeouts = DEFAULT_TIMEOUTS,
) -> float:
    """Map a post outcome event to the wait before the next attempt.

    Total over all inputs: unknown events (including arbitrary strings)
    get the medium tier.
    """
    try:
        event = ResponseEvent(event)
    except ValueError:
        return timeouts.medium

    if event in (ResponseEvent.OK, ResponseEvent.UNCHANGED):
        return 0
    if event == ResponseEvent.VALIDATION_FAILED:
        # A corrected declaration is likely to be queued soon
        return timeouts.small
    if event in (ResponseEvent.NOT_FOUND, ResponseEvent.UNPROCESSABLE_ENTITY):
        return timeouts.large
    return timeouts.medium
