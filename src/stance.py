from typing import Optional

from settings import STANCE_MIN, STANCE_MAX, STANCE_LEFT_MAX, STANCE_RIGHT_MIN

SIDES = ("left", "right")


def resolve_side(stance) -> Optional[str]:
    """
    Map a raw stance value to the side of a bipolar issue the user is on.

    Accepts the side tokens "left"/"right" or a position on the 1-5 onboarding
    scale. Neutral (3), missing and unrecognized values have no side.

    Returns:
        "left", "right" or None
    """
    if isinstance(stance, str):
        return stance if stance in SIDES else None

    # bool is an int subclass but never a scale position
    if isinstance(stance, bool) or not isinstance(stance, (int, float)):
        return None

    if not STANCE_MIN <= stance <= STANCE_MAX:
        return None
    if stance <= STANCE_LEFT_MAX:
        return "left"
    if stance >= STANCE_RIGHT_MIN:
        return "right"
    return None
