"""Descriptive statistics over iteration times."""
from __future__ import annotations
import statistics
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, Optional


@dataclass(frozen=True)
class Distribution:
    count: int
    min: float
    max: float
    sum: float
    mean: float
    median: float
    stdev: float
    variance: float
    rstdev: float

    @classmethod
    def from_samples(cls, samples: Iterable[float]) -> Optional["Distribution"]:
        values = [float(v) for v in samples]
        if not values:
            return None
        mean = statistics.fmean(values)
        # population deviation: every iteration of the variant is measured
        stdev = statistics.pstdev(values, mu=mean) if len(values) > 1 else 0.0
        return cls(
            count=len(values),
            min=min(values),
            max=max(values),
            sum=sum(values),
            mean=mean,
            median=statistics.median(values),
            stdev=stdev,
            variance=stdev ** 2,
            rstdev=(stdev / mean * 100) if mean else 0.0,
        )

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)
