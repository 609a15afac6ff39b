"""Random-number payload wrapped by the traced handlers."""

from __future__ import annotations

import random
from typing import Optional

DRAW_MIN = 1
DRAW_MAX = 9

DIE_FACES = 6


def draw_value(rng: Optional[random.Random] = None) -> int:
    """Uniform integer in [DRAW_MIN, DRAW_MAX]."""
    return (rng or random).randint(DRAW_MIN, DRAW_MAX)


def coin_flip(rng: Optional[random.Random] = None) -> bool:
    """Fair boolean."""
    return (rng or random).random() < 0.5


def roll_die(rng: Optional[random.Random] = None) -> int:
    return (rng or random).randint(1, DIE_FACES)
