"""Retry configuration model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryConfig(BaseModel):
    """Overrides for a single retry preset.

    Unset fields keep the preset's value.

    Attributes:
        max_attempts: Maximum number of attempts (1 = no retries)
        initial_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound on the un-jittered delay, in seconds
        backoff_multiplier: Exponential backoff multiplier
        jitter: Whether to perturb delays by up to +/-25%
    """

    max_attempts: Optional[int] = Field(None, gt=0, le=10)
    initial_delay: Optional[float] = Field(None, gt=0.0)
    max_delay: Optional[float] = Field(None, gt=0.0)
    backoff_multiplier: Optional[float] = Field(None, gt=1.0, le=10.0)
    jitter: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryConfig":
        if (
            self.initial_delay is not None
            and self.max_delay is not None
            and self.initial_delay > self.max_delay
        ):
            raise ValueError("initial_delay must not exceed max_delay")
        return self

    def overrides(self) -> dict:
        """Return only the fields that were explicitly set."""
        return self.model_dump(exclude_none=True)


class RetryPresetsConfig(BaseModel):
    """Per-preset retry overrides."""

    api_call: RetryConfig = Field(default_factory=RetryConfig)
    image_generation: RetryConfig = Field(default_factory=RetryConfig)
    fulfillment_operation: RetryConfig = Field(default_factory=RetryConfig)
    workflow: RetryConfig = Field(default_factory=RetryConfig)

    model_config = ConfigDict(extra="forbid")
