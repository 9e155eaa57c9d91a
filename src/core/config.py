"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CHUNK_SIZE = 25
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_CONCURRENCY = 10


@dataclass(frozen=True)
class LivenessConfig:
    """Dead domain resolver settings."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    double_check_dns: bool = False


@dataclass(frozen=True)
class ProcessingConfig:
    """Batch orchestration settings for one run."""

    concurrency: int = DEFAULT_CONCURRENCY
    comment_out: bool = False
