"""Operator-facing flavor text."""

import random
from typing import Optional, Sequence

DONE_MESSAGES = (
    "Done. Ship it!",
    "Done. Another version out the door.",
    "Done. The changelog writes itself (it doesn't).",
    "Done. Go grab a coffee while CI spins up.",
    "Done. Numbers went up, as they should.",
    "Done. Reviewers have been summoned.",
)


def pick(messages: Sequence[str] = DONE_MESSAGES, rng: Optional[random.Random] = None) -> str:
    """Pick one message uniformly at random."""
    return (rng or random).choice(messages)
