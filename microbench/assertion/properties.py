"""
Measured properties that assertion expressions may refer to.

The same vocabulary is used by the evaluator (keys of a measurement mapping)
and by the query translator (columns of the historical store), which is what
keeps an assertion and the equivalent history filter in agreement.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional

from microbench.core.exceptions import ExpressionError

TEXT = "text"
NUMBER = "number"


@dataclass(frozen=True)
class Property:
    name: str
    column: Optional[str]
    is_time: bool = False
    description: str = ""
    kind: str = NUMBER


PROPERTIES: Dict[str, Property] = {
    p.name: p
    for p in (
        Property("benchmark", "subject.benchmark", description="benchmark class name", kind=TEXT),
        Property("subject", "subject.name", description="subject method name", kind=TEXT),
        Property("group", "sgroup.name", description="group tag (matches if any group matches)", kind=TEXT),
        Property("run", "run.id", description="historical run id"),
        Property("date", "run.date", description="run date (ISO 8601)", kind=TEXT),
        Property("context", "run.context", description="run context tag", kind=TEXT),
        Property("iterations", "variant.iterations", description="number of iterations"),
        Property("min", "variant.min", True, "fastest iteration"),
        Property("max", "variant.max", True, "slowest iteration"),
        Property("sum", "variant.sum", True, "total time of all iterations"),
        Property("mean", "variant.mean", True, "mean iteration time"),
        Property("median", "variant.median", True, "median iteration time"),
        Property("stdev", "variant.stdev", True, "standard deviation"),
        Property("rstdev", "variant.rstdev", description="relative standard deviation (%)"),
        Property("mem_peak", "variant.mem_peak", description="peak memory of the variant (bytes)"),
        Property("time", "iteration.time", True, "time of a single iteration"),
        Property("memory", "iteration.memory", description="memory delta of a single iteration (bytes)"),
    )
}


def get_property(name: str) -> Property:
    try:
        return PROPERTIES[name]
    except KeyError:
        raise ExpressionError(
            f'Unknown property "{name}", known properties: {", ".join(sorted(PROPERTIES))}'
        )
