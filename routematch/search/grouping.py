from __future__ import annotations
from typing import Dict, List, Sequence, Tuple

from .models import Stop

# Group key for stops the route creator added directly. Application keys are
# tagged tuples, so no application id can collide with it.
CREATOR_KEY = ("creator",)

ContributorKey = Tuple[str, ...]


def contributor_key(stop: Stop) -> ContributorKey:
    if stop.application_id is None:
        return CREATOR_KEY
    return ("application", str(stop.application_id))


def group_stops_by_contributor(stops: Sequence[Stop]) -> List[List[Stop]]:
    """
    Split a route's stops into one group per contributor.

    Groups come out in the order their contributor is first seen, and each
    group keeps its stops in input order. That order is what the
    interleaving enumerator branches over, so it must stay deterministic.
    """
    ordered: List[List[Stop]] = []
    seen: Dict[ContributorKey, int] = {}

    for s in stops:
        k = contributor_key(s)
        idx = seen.get(k)
        if idx is None:
            idx = len(ordered)
            seen[k] = idx
            ordered.append([])
        ordered[idx].append(s)
    return ordered
