"""
Branch-and-Bound Expansion.

This module generates the children of a search node and the static
partition of the top-level target range into chunks.

Key Concepts:
- Moves: (donor_index, target_index) pairs, target-major order
- Pruning: State.is_admissible() filters every candidate move
- Chunks: contiguous target sub-ranges, remainder appended to the last chunk
"""

from __future__ import annotations
from typing import Iterator, Optional

from pressure_optimization.branch_bound.state import State

TargetRange = tuple[int, int]


def partition_targets(num_targets: int, num_chunks: int) -> list[TargetRange]:
    """
    Split [0, num_targets) into num_chunks contiguous half-open ranges.

    Args:
        num_targets: Number of targets
        num_chunks: Number of chunks (>= 1)

    Returns:
        List of (begin, end) ranges in chunk order

    Raises:
        ValueError: If num_chunks < 1

    Notes:
        - Each chunk gets num_targets // num_chunks targets
        - Remainder targets are appended to the last chunk
        - With num_chunks > num_targets all but the last chunk are empty

    Example:
        >>> partition_targets(5, 2)
        [(0, 2), (2, 5)]
    """
    if num_chunks < 1:
        raise ValueError(f"num_chunks ({num_chunks}) must be >= 1")
    per_chunk = num_targets // num_chunks
    ranges = [(i * per_chunk, (i + 1) * per_chunk) for i in range(num_chunks)]
    begin, _ = ranges[-1]
    ranges[-1] = (begin, num_targets)
    return ranges


def admissible_moves(
    state: State,
    target_range: Optional[TargetRange] = None
) -> Iterator[tuple[int, int]]:
    """
    Yield admissible (donor_index, target_index) moves of a state.

    Args:
        state: Current search state
        target_range: Optional half-open target range (default: all targets)

    Yields:
        (donor_index, target_index), targets outer loop, donors inner loop

    Notes:
        - Admissibility is evaluated lazily, right before each move is yielded.
          The caller may apply/unapply between iterations; the check then sees
          the restored state, as in a nested loop.
    """
    begin, end = target_range if target_range is not None else (0, state.num_targets())
    num_donors = state.num_donors()
    for ti in range(begin, end):
        for di in range(num_donors):
            if state.is_admissible(di, ti):
                yield di, ti
