"""
Benchmark prompt scenarios.
"""

from .definitions import (
    Scenario,
    ALL_SCENARIOS,
    DEFAULT_PROMPT,
    SHORT_SCENARIOS,
    MEDIUM_SCENARIOS,
    LONG_SCENARIOS,
    get_scenario,
    list_scenarios,
)

__all__ = [
    "Scenario",
    "ALL_SCENARIOS",
    "DEFAULT_PROMPT",
    "SHORT_SCENARIOS",
    "MEDIUM_SCENARIOS",
    "LONG_SCENARIOS",
    "get_scenario",
    "list_scenarios",
]
