from typing import Iterable, Optional


def match_tags(item_tags: Optional[Iterable[str]], selected_issues: Optional[Iterable[str]]) -> list[str]:
    """
    Return the item's tags that the user selected, in the item's tag order.

    Either side may be empty or None; most items are untagged and most
    issues unselected, so an empty result is the common case.
    """
    if not item_tags or not selected_issues:
        return []
    selected = set(selected_issues)
    return [tag for tag in item_tags if tag in selected]
