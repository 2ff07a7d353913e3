from typing import Iterable, Optional

from src.models import SEVERITY_ORDER


def resolve_dominant(classifications: Iterable[Optional[str]]) -> Optional[str]:
    """
    Reduce classifications to the single most severe one.

    Severity: conflict > mixed > aligned. None (and anything outside the
    closed set) never contributes. Only set membership is tested, so the
    input order does not matter.

    Returns:
        The dominant classification, or None if nothing classifiable was given
    """
    present = set(classifications or ())
    for classification in SEVERITY_ORDER:
        if classification in present:
            return classification
    return None
