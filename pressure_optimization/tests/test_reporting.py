"""
Tests for the reporting side channel: timer, logging, scenarios, CLI.
"""

import logging

import pytest

from pressure_optimization.__main__ import main
from pressure_optimization.branch_bound.solver import solve_with_report
from pressure_optimization.logging_config import PACKAGE_LOGGER, setup_logging
from pressure_optimization.models import ObjectiveValue, SolutionStatus
from pressure_optimization.performance import PerformanceTimer
from pressure_optimization.scenarios import SCENARIOS, build_state


@pytest.fixture
def clean_package_logger():
    """Remove handlers installed by setup_logging() after the test."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = True


def test_R1_timer_hierarchy():
    timer = PerformanceTimer()
    with timer.time_block("solve"):
        with timer.time_block("chunk 0"):
            pass
        with timer.time_block("chunk 1"):
            pass

    results = timer.results()
    assert [r['name'] for r in results] == ["solve"]
    assert [c['name'] for c in results[0]['children']] == ["chunk 0", "chunk 1"]
    lines = timer.report_lines()
    assert lines[0] == "PERFORMANCE TIMING REPORT"
    assert lines[-1].startswith("TOTAL: ")
    assert any(line.startswith("  chunk 1: ") for line in lines)


def test_R2_disabled_timer_records_nothing():
    timer = PerformanceTimer(enabled=False)
    with timer.time_block("solve"):
        pass
    assert timer.results() == []
    assert timer.report_lines() == []


def test_R3_solution_status_from_objective():
    assert SolutionStatus.from_objective(None) == SolutionStatus.NO_TRANSFER
    assert SolutionStatus.from_objective(ObjectiveValue(0.0, 0.0, 3.0, 0.0)) == SolutionStatus.FULL
    assert SolutionStatus.from_objective(ObjectiveValue(1.0, 0.0, 3.0, 12.0)) == \
        SolutionStatus.WITHIN_TOLERANCE
    assert SolutionStatus.from_objective(ObjectiveValue(1.0, 45.0, 3.0, 80.0)) == SolutionStatus.PARTIAL


def test_R4_search_logs_result_and_timing(tiny_state, caplog):
    caplog.set_level(logging.INFO, logger=PACKAGE_LOGGER)
    result = solve_with_report(tiny_state, depth_left=2, enable_performance_logging=True)

    messages = [record.getMessage() for record in caplog.records]
    assert "Solving with maximum number of connections: 2" in messages
    assert any(m.startswith("Solution found:\nObjective: 1, 60, 2, 110") for m in messages)
    assert "Num tests: 12" in messages
    assert "PERFORMANCE TIMING REPORT" in messages
    assert result.elapsed_s >= 0.0


def test_R5_scenarios():
    assert set(SCENARIOS) == {"five_targets", "six_targets"}
    state = build_state("six_targets")
    assert state.num_targets() == 6
    assert state.num_donors() == 6
    assert state.donors[4].max_pressure == 300
    with pytest.raises(KeyError):
        build_state("unknown")


def test_R6_setup_logging(clean_package_logger, tmp_path):
    log_file = tmp_path / "search.log"
    logger = setup_logging(logging.DEBUG, str(log_file))
    assert logger is clean_package_logger
    assert len(logger.handlers) == 2
    assert not logger.propagate

    logging.getLogger(PACKAGE_LOGGER + ".solver").info("Num tests: 12")
    for handler in logger.handlers:
        handler.flush()
    assert log_file.read_text(encoding="utf-8").rstrip().endswith("[INFO] Num tests: 12")

    setup_logging(logging.INFO)
    assert len(logger.handlers) == 1
    assert logger.handlers[0].formatter._fmt == "[%(levelname)s] %(message)s"


def test_R7_cli_runs_scenario(clean_package_logger, capsys):
    exit_code = main(["--scenario", "five_targets", "--depth", "1", "--executor", "inline"])
    assert exit_code == 0

    out = capsys.readouterr().out
    assert "Initial state:" in out
    assert "Solution found:" in out
    assert "Status: PARTIAL" in out
