"""
Data model shared by the benchmark engine.

Endpoints and model references come from configuration, requests are built
per run, stream events are transient, and results are what every reporter
consumes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from .errors import ConfigurationError


class ProviderFamily(Enum):
    """Wire-protocol family spoken by a provider endpoint."""

    OPENAI_COMPATIBLE = "openai-compatible"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: Union[str, "ProviderFamily"]) -> "ProviderFamily":
        """Parse a family from its config string."""
        if isinstance(value, cls):
            return value
        normalized = (value or "").strip().lower()
        # Older config files spell it "openai"
        if normalized == "openai":
            normalized = cls.OPENAI_COMPATIBLE.value
        for family in cls:
            if family.value == normalized:
                return family
        raise ConfigurationError(f"Unknown provider type: {value!r}")


@dataclass(frozen=True)
class ProviderEndpoint:
    """Connection details for one provider, fixed for the duration of a run."""

    id: str
    display_name: str
    family: ProviderFamily
    base_url: str
    api_key: str

    def with_api_key(self, api_key: str) -> "ProviderEndpoint":
        return ProviderEndpoint(
            id=self.id,
            display_name=self.display_name,
            family=self.family,
            base_url=self.base_url,
            api_key=api_key,
        )

    def __repr__(self) -> str:
        masked = f"...{self.api_key[-4:]}" if self.api_key else "<none>"
        return (
            f"ProviderEndpoint(id={self.id!r}, family={self.family.value!r}, "
            f"base_url={self.base_url!r}, api_key={masked!r})"
        )


@dataclass(frozen=True)
class ModelRef:
    """A model on a specific provider."""

    provider_id: str
    model_id: str
    display_name: str = ""
    provider_name: str = ""

    @property
    def name(self) -> str:
        return self.display_name or self.model_id

    @property
    def provider_label(self) -> str:
        return self.provider_name or self.provider_id

    @property
    def key(self) -> str:
        """Stable identifier, as written to tracker CSV rows."""
        return f"{self.provider_label}+{self.name}"

    def __str__(self) -> str:
        return f"{self.provider_label}:{self.name}"


@dataclass
class BenchmarkRequest:
    """A single prompt sent to a single model."""

    model_ref: ModelRef
    prompt: str
    max_tokens: int = 500
    temperature: float = 0.7
    streaming: bool = True


@dataclass(frozen=True)
class TextDelta:
    """A piece of generated text."""

    text: str


@dataclass(frozen=True)
class UsagePartial:
    """Token counts reported by the provider. Either side may be missing."""

    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


@dataclass(frozen=True)
class End:
    """The stream has finished."""

    pass


StreamEvent = Union[TextDelta, UsagePartial, End]


@dataclass(frozen=True)
class BenchmarkResult:
    """Outcome of one benchmark request.

    Failed results carry zeros in every numeric field and the error message
    in ``error``. A result completed from a stream that broke off part way
    carries the interruption in ``warning``.
    """

    model_ref: ModelRef
    success: bool
    total_time_ms: float = 0.0
    ttft_ms: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    tokens_per_second: float = 0.0
    estimated_input: bool = False
    estimated_output: bool = False
    error: Optional[str] = None
    warning: Optional[str] = None
    method: str = "rest-api"
    started_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def failed(
        cls,
        model_ref: ModelRef,
        error: str,
        method: str = "rest-api",
        started_at: Optional[datetime] = None,
    ) -> "BenchmarkResult":
        """Build a failed result with every number zeroed."""
        return cls(
            model_ref=model_ref,
            success=False,
            error=error,
            method=method,
            started_at=started_at or datetime.now(),
        )

    @property
    def is_estimated(self) -> bool:
        return self.estimated_input or self.estimated_output

    @property
    def total_time_seconds(self) -> float:
        return self.total_time_ms / 1000

    def to_dict(self) -> dict:
        """Convert to the JSON record emitted by the CLI and reporters."""
        return {
            "provider": self.model_ref.provider_label,
            "providerId": self.model_ref.provider_id,
            "model": self.model_ref.name,
            "modelId": self.model_ref.model_id,
            "method": self.method,
            "success": self.success,
            "totalTimeMs": self.total_time_ms,
            "ttftMs": self.ttft_ms,
            "tokensPerSecond": self.tokens_per_second,
            "outputTokens": self.output_tokens,
            "promptTokens": self.input_tokens,
            "totalTokens": self.total_tokens,
            "isEstimated": self.is_estimated,
            "estimatedInput": self.estimated_input,
            "estimatedOutput": self.estimated_output,
            "error": self.error,
            "warning": self.warning,
            "timestamp": self.started_at.isoformat(),
        }
