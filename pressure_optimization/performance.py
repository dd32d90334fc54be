"""
Performance timing utilities for the transfer search.

Provides a context manager for measuring execution time of code blocks
with hierarchical output (search -> chunks).
"""

import time
import logging
from typing import Optional, List, Dict, Any
from contextlib import contextmanager
import threading

logger = logging.getLogger(__name__)


class PerformanceTimer:
    """Thread-safe performance timer with hierarchical timing support."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._local = threading.local()

    def _get_stack(self) -> List[Dict[str, Any]]:
        """Get the current thread's timing stack."""
        if not hasattr(self._local, 'stack'):
            self._local.stack = []
        return self._local.stack

    def _get_results(self) -> List[Dict[str, Any]]:
        """Get the current thread's timing results."""
        if not hasattr(self._local, 'results'):
            self._local.results = []
        return self._local.results

    def _clear_results(self):
        self._local.results = []

    @contextmanager
    def time_block(self, name: str):
        """Context manager for timing a code block.

        Args:
            name: Name of the code block being timed

        Yields:
            None
        """
        if not self.enabled:
            yield
            return

        stack = self._get_stack()
        results = self._get_results()

        timing_info = {
            'name': name,
            'start': time.perf_counter(),
            'depth': len(stack),
            'children': []
        }
        stack.append(timing_info)

        try:
            yield
        finally:
            end_time = time.perf_counter()
            stack.pop()
            timing_info['elapsed'] = end_time - timing_info['start']
            timing_info['end'] = end_time

            # Nested blocks become children of the enclosing block
            if stack:
                stack[-1]['children'].append(timing_info)
            else:
                results.append(timing_info)

    def results(self) -> List[Dict[str, Any]]:
        """Top-level timings recorded by the current thread."""
        return list(self._get_results())

    def report_lines(self) -> List[str]:
        """Format timing results with hierarchy."""
        results = self._get_results()
        if not results:
            return []

        total_time = sum(r['elapsed'] for r in results)
        lines = ["PERFORMANCE TIMING REPORT"]

        def add_timing(timing: Dict[str, Any], parent_time: Optional[float] = None):
            elapsed = timing['elapsed']
            indent = "  " * timing['depth']
            if parent_time:
                percentage = (elapsed / parent_time) * 100
                lines.append(f"{indent}{timing['name']}: {elapsed:.3f}s ({percentage:.1f}%)")
            else:
                lines.append(f"{indent}{timing['name']}: {elapsed:.3f}s")
            for child in timing['children']:
                add_timing(child, elapsed)

        for result in results:
            add_timing(result, total_time)
        lines.append(f"TOTAL: {total_time:.3f}s")
        return lines

    def log_results(self):
        """Log the accumulated timing report and clear it."""
        if not self.enabled:
            return
        for line in self.report_lines():
            logger.info(line)
        self._clear_results()
