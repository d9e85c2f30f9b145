import math
import logging

logger = logging.getLogger(__name__)

TWO_PI = 2 * math.pi
# The pointer sits at the top of the wheel
POINTER_ANGLE = 3 * math.pi / 2


class ResolveOnEmpty(ValueError):
    """Raised when asked to pick a winner from an empty wheel"""


def pointer_angle(final_rotation):
    """Angle on the unrotated wheel that ends up under the pointer, in [0, 2pi)"""
    angle = ((POINTER_ANGLE - final_rotation) % TWO_PI + TWO_PI) % TWO_PI
    # x % 2pi can round up to exactly 2pi for tiny negative x
    if angle >= TWO_PI:
        angle = 0.0
    return angle


def winning_index(count, final_rotation):
    if count < 1:
        raise ResolveOnEmpty("Cannot resolve a winner without entries")
    arc = TWO_PI / count
    index = int(math.floor(pointer_angle(final_rotation) / arc))
    return min(index, count - 1)


def resolve_winner(entries, final_rotation):
    """Return the entry under the pointer once the wheel stops at final_rotation"""
    index = winning_index(len(entries), final_rotation)
    winner = entries[index]
    logger.info(f"Winner: {winner.name} (slice {index} of {len(entries)}, rotation {final_rotation:.4f})")
    return winner
