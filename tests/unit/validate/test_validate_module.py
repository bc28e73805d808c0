import json

import pytest
from jsonschema import exceptions

from microbench.core import serializer
from microbench.core.models import ParameterSet
from microbench.core.results import AssertionFailure, BenchmarkResult, Iteration, SubjectResult, SuiteResult, VariantResult
from microbench.core.validate import DEFAULT_SCHEMA_PATH, SuiteDocumentValidator, load_schema, validate_document


def make_suite():
    ps = ParameterSet({"size": 10, "fast": True})
    variant = VariantResult(0, ps, [Iteration(0, ps, 12.5, 8, 16), Iteration(1, ps, 13.5, 0, 16)])
    variant.failures.append(AssertionFailure("mean < 1 us", "too slow"))
    subject = SubjectResult("bench_join", description="Join strings", groups=["strings"], variants=[variant])
    suite = SuiteResult(
        benchmarks=[BenchmarkResult("StringBench", "bench_strings.py", [subject])],
        context="ci",
        environment={"python": {"version": "3.12"}},
    )
    return suite


def test_dumped_suite_is_valid():
    document = serializer.dump(make_suite())
    validator = SuiteDocumentValidator()
    assert validator.is_valid(document)
    validator.validate(document)
    assert validate_document(document).valid
    assert document["benchmarks"][0]["subjects"][0]["variants"][0]["stats"]["mean"] == 13.0


def test_validator_reports_location():
    document = serializer.dump(make_suite())
    document["benchmarks"][0]["subjects"][0]["variants"][0]["iterations"][1]["time"] = "fast"
    validator = SuiteDocumentValidator(DEFAULT_SCHEMA_PATH)
    assert not validator.is_valid(document)
    with pytest.raises(exceptions.ValidationError) as exc:
        validator.validate(document)
    assert "benchmarks -> 0 -> subjects -> 0 -> variants -> 0 -> iterations -> 1 -> time" in str(exc.value.message)
    errors = validator.iter_errors(document)
    assert len(errors) == 1 and errors[0].startswith("Validation error (location: ")


def test_validate_document_with_schema_mapping():
    schema = load_schema()
    result = validate_document({"version": "1"}, schema)
    assert not result.valid
    assert "date" in result.error and "benchmarks" in result.error


def test_validate_document_with_missing_schema(tmp_path):
    result = validate_document({}, tmp_path / "missing.json")
    assert not result.valid
    assert result.error.startswith("Validation process error")


def test_round_trip():
    suite = make_suite()
    loaded = serializer.loads(serializer.dumps(suite))
    assert serializer.dump(loaded) == serializer.dump(suite)
    variant = loaded.benchmarks[0].subjects[0].variants[0]
    assert variant.parameters == ParameterSet({"size": 10, "fast": True})
    assert variant.iterations[1].parameters is variant.parameters
    assert variant.failures[0].expression == "mean < 1 us"
    assert loaded.context == "ci"


def test_file_round_trip(tmp_path):
    path = serializer.dump_file(make_suite(), tmp_path / "out" / "suite.json")
    assert json.loads(path.read_text(encoding="utf-8"))["version"] == "1"
    assert serializer.load_file(path).iteration_count == 2


def test_load_rejects_invalid_documents():
    with pytest.raises(exceptions.ValidationError):
        serializer.load({"version": "2", "date": "x", "benchmarks": []})
    with pytest.raises(exceptions.ValidationError):
        serializer.loads("{not json")
