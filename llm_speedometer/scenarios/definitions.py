"""
Benchmark prompt definitions.

Throughput numbers are only comparable between models when every model
gets the same prompt, so runs use one named scenario for all requests.
Categories differ by how much output the prompt tends to produce:
1. Short completions (TTFT dominates)
2. Medium completions (the default)
3. Long completions (sustained throughput dominates)
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Scenario:
    """A named benchmark prompt."""

    name: str
    description: str
    category: str
    prompt: str
    max_tokens: int = 500
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "prompt": self.prompt,
            "max_tokens": self.max_tokens,
            "metadata": self.metadata,
        }


DEFAULT_PROMPT = (
    "Write a detailed explanation of how a modern web browser renders a page, "
    "starting from the moment the user presses Enter in the address bar. Cover "
    "DNS resolution, the TCP and TLS handshakes, the HTTP request and response, "
    "HTML parsing and the DOM, CSS parsing and the CSSOM, the render tree, "
    "layout, painting and compositing. Use clear headings for each stage."
)


# ============================================================================
# Short completions
# ============================================================================

SHORT_SCENARIOS = [
    Scenario(
        name="short_factual",
        description="One-line factual answer",
        category="short",
        prompt="What is the capital of Japan? Answer in one sentence.",
        max_tokens=50,
    ),
    Scenario(
        name="short_definition",
        description="Brief definition",
        category="short",
        prompt="Define machine learning in two sentences.",
        max_tokens=100,
    ),
]


# ============================================================================
# Medium completions
# ============================================================================

MEDIUM_SCENARIOS = [
    Scenario(
        name="default",
        description="Multi-section technical explanation",
        category="medium",
        prompt=DEFAULT_PROMPT,
        max_tokens=500,
    ),
    Scenario(
        name="medium_code",
        description="Small function with explanation",
        category="medium",
        prompt=(
            "Write a Python function that merges overlapping intervals in a list "
            "of (start, end) tuples, then explain its time complexity."
        ),
        max_tokens=500,
    ),
]


# ============================================================================
# Long completions
# ============================================================================

LONG_SCENARIOS = [
    Scenario(
        name="long_essay",
        description="Long-form essay",
        category="long",
        prompt=(
            "Write a thorough essay on the history of computing, from mechanical "
            "calculators through vacuum tubes, transistors, integrated circuits, "
            "personal computers, the internet and mobile devices. Give each era "
            "its own section with key people, machines and dates."
        ),
        max_tokens=2000,
    ),
]


ALL_SCENARIOS = {
    "short": SHORT_SCENARIOS,
    "medium": MEDIUM_SCENARIOS,
    "long": LONG_SCENARIOS,
}


def get_scenario(name: str) -> Optional[Scenario]:
    """Get a scenario by name."""
    for category_scenarios in ALL_SCENARIOS.values():
        for scenario in category_scenarios:
            if scenario.name == name:
                return scenario
    return None


def list_scenarios() -> dict[str, list[str]]:
    """List all available scenarios by category."""
    return {
        category: [s.name for s in scenarios]
        for category, scenarios in ALL_SCENARIOS.items()
    }
