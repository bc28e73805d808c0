"""
Suite result documents

``dump`` turns a ``SuiteResult`` into a plain JSON-compatible document
(schema ``suite-result-v1.json``); ``load`` validates such a document and
rebuilds the result tree. Statistics are written for readers of the
document but recomputed from the iterations on load.
"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Optional

from jsonschema import exceptions

from .models import ParameterSet
from .results import (
    AssertionFailure,
    BenchmarkResult,
    Iteration,
    SubjectResult,
    SuiteResult,
    VariantResult,
)
from .validate import SuiteDocumentValidator

DOCUMENT_VERSION = "1"


def dump(suite: SuiteResult) -> Dict[str, Any]:
    return {
        "version": DOCUMENT_VERSION,
        "date": suite.date,
        "context": suite.context,
        "aborted": suite.aborted,
        "environment": {provider: dict(info) for provider, info in suite.environment.items()},
        "benchmarks": [
            {
                "class": benchmark.class_name,
                "path": benchmark.path,
                "subjects": [
                    {
                        "name": subject.name,
                        "description": subject.description,
                        "groups": list(subject.groups),
                        "variants": [_dump_variant(v) for v in subject.variants],
                    }
                    for subject in benchmark.subjects
                ],
            }
            for benchmark in suite.benchmarks
        ],
    }


def _dump_variant(variant: VariantResult) -> Dict[str, Any]:
    stats = variant.stats
    return {
        "index": variant.index,
        "parameters": variant.parameters.as_dict(),
        "iterations": [
            {"index": i.index, "time": i.time, "memory": i.memory, "mem_peak": i.mem_peak}
            for i in variant.iterations
        ],
        "failures": [{"expression": f.expression, "message": f.message} for f in variant.failures],
        "stats": stats.as_dict() if stats is not None else None,
    }


def dumps(suite: SuiteResult, indent: Optional[int] = 2) -> str:
    return json.dumps(dump(suite), ensure_ascii=False, indent=indent)


def load(document: Dict[str, Any], validator: Optional[SuiteDocumentValidator] = None) -> SuiteResult:
    """
    Build a ``SuiteResult`` from a dumped document.

    Raises:
        jsonschema.exceptions.ValidationError: the document does not match the schema
    """
    (validator or SuiteDocumentValidator()).validate(document)

    suite = SuiteResult(
        date=document["date"],
        context=document.get("context"),
        environment={p: dict(info) for p, info in document.get("environment", {}).items()},
        aborted=document.get("aborted", False),
    )
    for benchmark_doc in document["benchmarks"]:
        benchmark = BenchmarkResult(class_name=benchmark_doc["class"], path=benchmark_doc.get("path"))
        suite.benchmarks.append(benchmark)
        for subject_doc in benchmark_doc["subjects"]:
            subject = SubjectResult(
                name=subject_doc["name"],
                description=subject_doc.get("description"),
                groups=list(subject_doc.get("groups", [])),
            )
            benchmark.subjects.append(subject)
            for variant_doc in subject_doc["variants"]:
                parameters = ParameterSet(variant_doc["parameters"])
                subject.variants.append(
                    VariantResult(
                        index=variant_doc["index"],
                        parameters=parameters,
                        iterations=[
                            Iteration(
                                index=i["index"],
                                parameters=parameters,
                                time=float(i["time"]),
                                memory=i.get("memory", 0),
                                mem_peak=i.get("mem_peak", 0),
                            )
                            for i in variant_doc["iterations"]
                        ],
                        failures=[
                            AssertionFailure(f["expression"], f["message"])
                            for f in variant_doc.get("failures", [])
                        ],
                    )
                )
    return suite


def loads(text: str, validator: Optional[SuiteDocumentValidator] = None) -> SuiteResult:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise exceptions.ValidationError(f"Suite document is not valid JSON: {e}")
    return load(document, validator)


def dump_file(suite: SuiteResult, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps(suite), encoding="utf-8")
    return path


def load_file(path: str | Path, validator: Optional[SuiteDocumentValidator] = None) -> SuiteResult:
    return loads(Path(path).read_text(encoding="utf-8"), validator)
