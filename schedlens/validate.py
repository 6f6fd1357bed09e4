from __future__ import annotations

from schedlens.config import AnalysisConfig


class ConfigValidationError(ValueError):
    pass


def validate_config(config: AnalysisConfig) -> None:
    if config.top_n < 1:
        raise ConfigValidationError(f"top_n must be >= 1 (got {config.top_n})")

    if config.workers is not None and config.workers < 1:
        raise ConfigValidationError(
            f"workers must be >= 1 when set (got {config.workers})"
        )

    if config.queue_capacity < 1:
        raise ConfigValidationError(
            f"queue_capacity must be >= 1 (got {config.queue_capacity})"
        )

    t = config.thresholds
    for name in ("channel_recv_pct", "channel_send_pct", "lock_pct", "gc_pct", "dominance_pct"):
        value = getattr(t, name)
        if not 0.0 < value <= 100.0:
            raise ConfigValidationError(
                f"threshold '{name}' must be in (0, 100] (got {value})"
            )

    if not 0.0 < t.starvation_ratio < 1.0:
        raise ConfigValidationError(
            f"threshold 'starvation_ratio' must be in (0, 1) (got {t.starvation_ratio})"
        )
