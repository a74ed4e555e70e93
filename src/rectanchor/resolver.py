"""
Corner-set intersection resolver.

Not all four corners of a rectangle necessarily land on the same surface,
but three corners are enough to define it. The corner triples are tried in a
fixed order and the first one whose hits share a surface wins.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence, Tuple

from .corners import Corner, CornerTriple
from .hit_test import HitCandidate, same_surface
from .intersection import first_common

LOGGER = logging.getLogger(__name__)

# (corners tested, corner left out), in priority order.
TRIPLE_ORDER: Tuple[Tuple[Tuple[Corner, Corner, Corner], Corner], ...] = (
    ((Corner.TOP_LEFT, Corner.TOP_RIGHT, Corner.BOTTOM_LEFT), Corner.BOTTOM_RIGHT),
    ((Corner.TOP_LEFT, Corner.TOP_RIGHT, Corner.BOTTOM_RIGHT), Corner.BOTTOM_LEFT),
    ((Corner.TOP_LEFT, Corner.BOTTOM_LEFT, Corner.BOTTOM_RIGHT), Corner.TOP_RIGHT),
    ((Corner.TOP_RIGHT, Corner.BOTTOM_LEFT, Corner.BOTTOM_RIGHT), Corner.TOP_LEFT),
)


def resolve(
    candidates: Mapping[Corner, Sequence[HitCandidate]],
    sort_by_distance: bool = False,
) -> Optional[CornerTriple]:
    """Find three corners whose hits share a surface.

    Args:
        candidates: Hit candidates per corner; absent corners count as no hits
        sort_by_distance: Sort each list by camera distance first, for input
            that did not come through ``HitTestAdapter``

    Returns:
        The first matching ``CornerTriple`` in priority order, or None when no
        three corners share a surface
    """
    lists = {}
    for corner in Corner:
        hits: List[HitCandidate] = list(candidates.get(corner, ()))
        if sort_by_distance:
            hits.sort(key=lambda hit: hit.distance)
        lists[corner] = hits

    for corners, missing in TRIPLE_ORDER:
        picked = first_common([lists[corner] for corner in corners], same_surface)
        if picked is None:
            continue

        surface_id = picked[0].surface_id
        LOGGER.debug(
            "Corners %s share surface %s",
            ", ".join(corner.name for corner in corners),
            surface_id,
        )
        return CornerTriple(
            missing=missing,
            points={corner: hit.world_point for corner, hit in zip(corners, picked)},
            surface_id=surface_id,
        )

    LOGGER.info("No three corners share a surface")
    return None
