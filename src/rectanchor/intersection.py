"""
Intersection of parallel collections under a custom equality.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")

Comparator = Callable[[T, T], bool]


def filter_by_intersection(
    collections: Sequence[Sequence[T]],
    comparator: Comparator,
) -> List[List[T]]:
    """Filter each collection down to the items common to all collections.

    An item is kept when every collection (its own included) contains an
    element that ``comparator`` reports as the same. Order inside each
    collection is preserved, so the first surviving item of a collection is
    its first common element.

    Args:
        collections: Parallel collections to intersect
        comparator: Returns True when two items are considered the same

    Returns:
        One filtered list per input collection, in input order
    """
    results: List[List[T]] = []
    for current in collections:
        kept = [
            item
            for item in current
            if all(any(comparator(item, other) for other in collection) for collection in collections)
        ]
        results.append(kept)
    return results


def first_common(
    collections: Sequence[Sequence[T]],
    comparator: Comparator,
) -> Optional[List[T]]:
    """Return, per collection, the first item matching the first common element.

    The first collection's first surviving item decides which element is
    "common"; every other collection contributes its first item equal to it.
    Returns None when the collections share nothing.
    """
    if not collections:
        return None

    filtered = filter_by_intersection(collections, comparator)
    if not filtered[0]:
        return None

    anchor = filtered[0][0]
    picked: List[T] = [anchor]
    for survivors in filtered[1:]:
        match = next((item for item in survivors if comparator(anchor, item)), None)
        if match is None:
            return None
        picked.append(match)
    return picked
