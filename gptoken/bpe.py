from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TypeVar

T = TypeVar("T")

NO_RANK = float("inf")


def byte_pair_merge(piece: bytes, ranks: Mapping[bytes, int], f: Callable[[int, int], T]) -> list[T]:
    """
    Greedy rank-ordered merge of one piece.

    ``parts`` holds the cut positions of the piece, each paired with the rank of the
    byte range from that cut to the cut two positions ahead (the merge it would make
    with its right neighbour). Each step merges the lowest rank, leftmost on ties,
    and refreshes the two cuts whose right neighbour changed. ``f`` maps every
    remaining ``(start, end)`` range to the output value.
    """
    parts = [[i, NO_RANK] for i in range(len(piece) + 1)]

    def get_rank(start_idx: int):
        if start_idx + 2 < len(parts):
            return ranks.get(piece[parts[start_idx][0]:parts[start_idx + 2][0]], NO_RANK)
        return NO_RANK

    for i in range(len(parts) - 2):
        parts[i][1] = get_rank(i)

    while len(parts) > 1:
        min_rank = NO_RANK
        min_idx = -1
        for i in range(len(parts) - 1):
            if parts[i][1] < min_rank:
                min_rank = parts[i][1]
                min_idx = i

        if min_idx == -1:
            break

        # merge parts[min_idx] with its right neighbour
        del parts[min_idx + 1]
        parts[min_idx][1] = get_rank(min_idx)
        if min_idx > 0:
            parts[min_idx - 1][1] = get_rank(min_idx - 1)

    return [f(parts[i][0], parts[i + 1][0]) for i in range(len(parts) - 1)]


def byte_pair_encode(piece: bytes, ranks: Mapping[bytes, int]) -> list[int]:
    if len(piece) == 1:
        return [ranks[piece]]
    return byte_pair_merge(piece, ranks, lambda start, end: ranks[piece[start:end]])


def byte_pair_split(piece: bytes, ranks: Mapping[bytes, int]) -> list[bytes]:
    "Same merge as byte_pair_encode, returning the byte ranges instead of their ranks."
    if len(piece) == 1:
        return [bytes(piece)]
    return byte_pair_merge(piece, ranks, lambda start, end: bytes(piece[start:end]))
