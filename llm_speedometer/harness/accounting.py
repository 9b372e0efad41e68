"""
Token accounting for a single streamed response.

Provider-reported counts are preferred. Where a provider reports nothing
(or zero) the count is estimated from text length at four characters per
token, and the result is flagged as estimated.
"""

import math
from dataclasses import dataclass
from typing import Optional

from ..models import StreamEvent, TextDelta, UsagePartial

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate a token count from text length.

    Halves round up (10 chars -> 3 tokens), not to even.
    """
    return int(math.floor(len(text) / CHARS_PER_TOKEN + 0.5))


@dataclass(frozen=True)
class TokenCounts:
    input_tokens: int
    output_tokens: int
    estimated_input: bool
    estimated_output: bool

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class TokenAccountant:
    """Accumulates text and usage events for one request."""

    def __init__(self):
        self._parts: list[str] = []
        self.reported_input: Optional[int] = None
        self.reported_output: Optional[int] = None
        self.text_events = 0
        self.usage_events = 0

    def observe(self, event: StreamEvent) -> None:
        if isinstance(event, TextDelta):
            self._parts.append(event.text)
            self.text_events += 1
        elif isinstance(event, UsagePartial):
            self.usage_events += 1
            # Later non-zero values win; zeros never erase a real count
            if event.input_tokens:
                self.reported_input = event.input_tokens
            if event.output_tokens:
                self.reported_output = event.output_tokens

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def has_data(self) -> bool:
        """True once any text or usage has been observed."""
        return self.text_events > 0 or self.usage_events > 0

    def finalize(self, prompt: str) -> TokenCounts:
        if self.reported_input:
            input_tokens, estimated_input = self.reported_input, False
        else:
            input_tokens, estimated_input = estimate_tokens(prompt), True

        if self.reported_output:
            output_tokens, estimated_output = self.reported_output, False
        else:
            output_tokens, estimated_output = estimate_tokens(self.text), True

        return TokenCounts(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            estimated_input=estimated_input,
            estimated_output=estimated_output,
        )
