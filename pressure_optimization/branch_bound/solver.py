"""
Branch-and-Bound Main Loop.

This module implements solve() - the depth-bounded transfer search.

Key Concepts:
- Depth-first backtracking over one mutable State (apply / recurse / unapply)
- Bound pruning: State.is_worse_than(best) abandons a branch early
- Budget: shared test counter, checked on entry of every call
- Chunks: top-level target range split into independent searches (fan-out),
  reduced by minimum scalar objective afterwards (fan-in)
"""

from __future__ import annotations
import logging
import time
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from pressure_optimization.branch_bound.state import State
from pressure_optimization.branch_bound.expansion import (
    TargetRange, admissible_moves, partition_targets
)
from pressure_optimization.config import SearchConfig
from pressure_optimization.models import ChunkResult, SearchResult, SolutionStatus
from pressure_optimization.performance import PerformanceTimer

logger = logging.getLogger(__name__)

DEFAULT_MAX_TESTS = 10**10


@dataclass
class _SearchContext:
    """Per-chunk mutable search bookkeeping (never shared between chunks)."""
    best_state: State
    max_tests: int
    deduplicate_states: bool = False
    num_tests: int = 0
    visited: set = field(default_factory=set)


def _search(
    state: State,
    context: _SearchContext,
    depth_left: int,
    target_range: Optional[TargetRange] = None
) -> None:
    """
    Recursive branch-and-bound step.

    Args:
        state: Current state (mutated, restored before returning)
        context: Best state, test counter and budget of this chunk
        depth_left: Remaining number of transfers on this path
        target_range: Restricted target range (outermost call only)

    Notes:
        - Terminal: depth exhausted, budget exhausted, or bound pruning
        - A child replaces the best state only if strictly better (scalar)
        - The budget is checked per call, not per node
    """
    if depth_left == 0:
        return
    if context.num_tests >= context.max_tests:
        return
    if state.is_worse_than(context.best_state):
        return

    for donor_index, target_index in admissible_moves(state, target_range):
        state.apply(donor_index, target_index)

        if context.deduplicate_states:
            key = state.key()
            if key in context.visited:
                state.unapply_last_event()
                continue
            context.visited.add(key)

        if state.objective_value() < context.best_state.objective_value():
            context.best_state = state.copy()
        context.num_tests += 1

        # Restricted target range only applies to the outermost call
        _search(state, context, depth_left - 1)
        state.unapply_last_event()


def _search_chunk(
    initial_state: State,
    chunk_index: int,
    target_range: TargetRange,
    depth_left: int,
    max_tests: int,
    deduplicate_states: bool = False
) -> tuple[State, ChunkResult]:
    """
    Search one chunk from its own copy of the initial state.

    Returns:
        Tuple (best_state, ChunkResult)

    Notes:
        - Module-level so it can be pickled into worker processes
    """
    state = initial_state.copy()
    context = _SearchContext(
        best_state=initial_state.copy(),
        max_tests=max_tests,
        deduplicate_states=deduplicate_states,
    )
    _search(state, context, depth_left, target_range)
    logger.debug(
        "Chunk %d targets [%d, %d): %d tests, objective %g",
        chunk_index, target_range[0], target_range[1],
        context.num_tests, context.best_state.objective_value()
    )
    return context.best_state, ChunkResult(
        chunk_index=chunk_index,
        target_range=target_range,
        num_tests=context.num_tests,
        objective_value=context.best_state.objective_value(),
    )


def _make_executor(config: SearchConfig) -> Executor:
    if config.executor == "thread":
        return ThreadPoolExecutor(max_workers=config.max_workers)
    return ProcessPoolExecutor(max_workers=config.max_workers)


def search(initial_state: State, config: SearchConfig) -> SearchResult:
    """
    Depth-bounded branch-and-bound search for the best transfer sequence.

    Args:
        initial_state: State to start from (not modified)
        config: SearchConfig with depth, chunking, budget and executor

    Returns:
        SearchResult with best state, total tests, elapsed time, status
        and per-chunk statistics

    Algorithm:
        1. Partition [0, num_targets) into config.num_chunks ranges
        2. Search every chunk independently (own state copy, own best,
           budget max_tests // num_chunks), in a pool or inline
        3. Join, then pick the chunk best with minimum scalar objective
           (first in chunk order on ties) and sum the test counts

    Notes:
        - If no admissible transfer exists, the returned best state equals the
          initial state and its objective_value() is +inf (NO_TRANSFER)
        - Deterministic for num_chunks == 1
    """
    logger.info("Solving with maximum number of connections: %d", config.depth_left)
    timer = PerformanceTimer(enabled=config.enable_performance_logging)
    ranges = partition_targets(initial_state.num_targets(), config.num_chunks)
    max_tests = config.tests_per_chunk

    t0 = time.perf_counter()
    with timer.time_block("solve"):
        if config.runs_inline:
            outcomes = []
            for chunk_index, target_range in enumerate(ranges):
                with timer.time_block(f"chunk {chunk_index} targets [{target_range[0]}, {target_range[1]})"):
                    outcomes.append(_search_chunk(
                        initial_state, chunk_index, target_range,
                        config.depth_left, max_tests, config.deduplicate_states
                    ))
        else:
            with _make_executor(config) as pool:
                futures = [
                    pool.submit(
                        _search_chunk, initial_state, chunk_index, target_range,
                        config.depth_left, max_tests, config.deduplicate_states
                    )
                    for chunk_index, target_range in enumerate(ranges)
                ]
                outcomes = [future.result() for future in futures]
    elapsed_s = time.perf_counter() - t0

    best_state, _ = min(outcomes, key=lambda outcome: outcome[0].objective_value())
    chunks = [chunk for _, chunk in outcomes]
    num_tests = sum(chunk.num_tests for chunk in chunks)
    last_event = best_state.last_event
    status = SolutionStatus.from_objective(
        last_event.lexicographic_objective_value if last_event is not None else None
    )

    logger.info("Solution found:\n%s", best_state)
    logger.info("Num tests: %d", num_tests)
    logger.info("Elapsed time: %.0f ms", elapsed_s * 1000.0)
    timer.log_results()

    return SearchResult(
        best_state=best_state,
        num_tests=num_tests,
        elapsed_s=elapsed_s,
        status=status,
        chunks=chunks,
    )


def solve_with_report(
    initial_state: State,
    depth_left: int,
    num_chunks: int = 1,
    max_tests: int = DEFAULT_MAX_TESTS,
    **options
) -> SearchResult:
    """
    Run search() and return the full SearchResult.

    Args:
        initial_state: State to start from (not modified)
        depth_left: Maximum number of transfers on any path
        num_chunks: Number of independently searched top-level target ranges
        max_tests: Total test budget (divided evenly across chunks)
        **options: Further SearchConfig fields (executor, max_workers,
                   deduplicate_states, enable_performance_logging)
    """
    config = SearchConfig(depth_left=depth_left, num_chunks=num_chunks,
                          max_tests=max_tests, **options)
    return search(initial_state, config)


def solve(
    initial_state: State,
    depth_left: int,
    num_chunks: int = 1,
    max_tests: int = DEFAULT_MAX_TESTS,
    **options
) -> State:
    """
    Return the best state found within the given bounds.

    Example:
        >>> state = State([(12, 100, 200)], [(12, 232)])
        >>> best = solve(state, depth_left=2)
        >>> best.num_events()
        1
    """
    return solve_with_report(initial_state, depth_left, num_chunks, max_tests, **options).best_state
