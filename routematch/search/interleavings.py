from __future__ import annotations
from typing import List, Sequence

import math

from .config import MAX_INTERLEAVINGS
from .models import Stop


def total_len(groups: Sequence[Sequence[Stop]]) -> int:
    return sum(len(g) for g in groups)


def count_interleavings(groups: Sequence[Sequence[Stop]]) -> int:
    """
    Number of order-preserving merges of the groups, i.e. the multinomial
    coefficient (n1 + ... + nk)! / (n1! * ... * nk!).
    """
    if not groups:
        return 0
    count = 1
    placed = 0
    for g in groups:
        placed += len(g)
        count *= math.comb(placed, len(g))
    return count


def all_interleavings(
    groups: Sequence[Sequence[Stop]],
    max_orderings: int = MAX_INTERLEAVINGS,
) -> List[List[Stop]]:
    """
    Enumerate merges of `groups` that keep every group's internal order.

    Depth-first: at each step the groups are tried left to right, so once
    `max_orderings` results exist the output is the first orderings in that
    fixed priority order, not a sample of the whole space. Same input, same
    output.
    """
    if not groups:
        return []
    if len(groups) == 1:
        return [list(groups[0])]

    result: List[List[Stop]] = []
    if max_orderings <= 0:
        return result

    n_groups = len(groups)
    target = total_len(groups)
    cursors = [0] * n_groups
    current: List[Stop] = []

    def gen() -> None:
        if len(result) >= max_orderings:
            return
        if len(current) == target:
            result.append(list(current))
            return
        for g in range(n_groups):
            if cursors[g] < len(groups[g]):
                current.append(groups[g][cursors[g]])
                cursors[g] += 1
                gen()
                cursors[g] -= 1
                current.pop()

    gen()
    return result
