from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable


def _coerce(name: str, value: Any, cast: Callable[[Any], Any]) -> Any:
    # bool is an int subclass; JSON true/false is never a valid number here.
    if isinstance(value, bool):
        raise ValueError(f"config key '{name}' must be a number (got {value!r})")
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"config key '{name}' must be a number (got {value!r})") from e


@dataclass(frozen=True)
class RuleThresholds:
    # Percentages of total blocked time.
    channel_recv_pct: float = 40.0
    channel_send_pct: float = 40.0
    lock_pct: float = 30.0
    gc_pct: float = 15.0
    dominance_pct: float = 50.0
    # runnable / (runnable + running), per task.
    starvation_ratio: float = 0.7

    @staticmethod
    def from_json(obj: Any) -> "RuleThresholds":
        if obj is None:
            return RuleThresholds()
        if not isinstance(obj, dict):
            raise ValueError("config key 'thresholds' must be a JSON object")
        known = RuleThresholds.__dataclass_fields__
        unknown = sorted(map(str, set(obj) - set(known)))
        if unknown:
            raise ValueError(f"unknown threshold keys: {', '.join(unknown)}")
        return RuleThresholds(
            **{str(k): _coerce(f"thresholds.{k}", v, float) for k, v in obj.items()}
        )


@dataclass(frozen=True)
class AnalysisConfig:
    top_n: int = 10
    workers: int | None = None  # None -> os.cpu_count()
    queue_capacity: int = 1000
    thresholds: RuleThresholds = field(default_factory=RuleThresholds)

    @staticmethod
    def from_json(obj: Any) -> "AnalysisConfig":
        if not isinstance(obj, dict):
            raise ValueError("config must be a JSON object")
        workers = obj.get("workers")
        return AnalysisConfig(
            top_n=_coerce("top_n", obj.get("top_n", 10), int),
            workers=_coerce("workers", workers, int) if workers is not None else None,
            queue_capacity=_coerce("queue_capacity", obj.get("queue_capacity", 1000), int),
            thresholds=RuleThresholds.from_json(obj.get("thresholds")),
        )

    def with_workers(self, workers: int | None) -> "AnalysisConfig":
        if workers is None:
            return self
        return AnalysisConfig(
            top_n=self.top_n,
            workers=int(workers),
            queue_capacity=self.queue_capacity,
            thresholds=self.thresholds,
        )


DEFAULT_CONFIG = AnalysisConfig()
