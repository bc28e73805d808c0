import pytest
from pydantic import ValidationError as PydanticValidationError

from microbench.core.models import BenchmarkMetadata, ParameterSet, SubjectMetadata


def test_parameter_set_is_an_immutable_mapping():
    ps = ParameterSet({"size": 10, "name": "x"})
    assert len(ps) == 2
    assert ps["size"] == 10
    assert "name" in ps
    assert list(ps.keys()) == ["size", "name"]
    with pytest.raises(PydanticValidationError):
        ps.root = {}


def test_parameter_set_merge_keeps_provider_order():
    merged = ParameterSet.merge([ParameterSet({"a": 1}), ParameterSet({"b": 2}), ParameterSet({"a": 3})])
    assert merged.as_dict() == {"a": 3, "b": 2}


def test_subject_defaults_and_dedup():
    subject = SubjectMetadata(name="bench_foo", groups=["a", "b", "a"], before_methods=["x", "x"])
    assert subject.iterations == 1
    assert subject.groups == ["a", "b"]
    assert subject.before_methods == ["x"]
    assert subject.parameter_sets is None
    assert not subject.is_resolved


def test_subject_iterations_must_be_positive():
    with pytest.raises(PydanticValidationError):
        SubjectMetadata(name="bench_foo", iterations=0)


def test_parameter_sets_can_be_set_once():
    subject = SubjectMetadata(name="bench_foo", param_providers=["p"])
    subject.set_parameter_sets([[{"a": 1}]])
    assert subject.is_resolved
    assert subject.parameter_sets == [[ParameterSet({"a": 1})]]
    with pytest.raises(RuntimeError):
        subject.set_parameter_sets([[{"a": 2}]])


def test_subject_groups_lookup():
    subject = SubjectMetadata(name="bench_foo", groups=["fast"])
    assert subject.in_groups(["slow", "fast"])
    assert not subject.in_groups(["slow"])


def test_benchmark_rejects_duplicate_subjects():
    with pytest.raises(PydanticValidationError):
        BenchmarkMetadata(class_name="B", subjects=[SubjectMetadata(name="x"), SubjectMetadata(name="x")])


def test_benchmark_iter_subjects_skips():
    metadata = BenchmarkMetadata(
        class_name="B",
        subjects=[SubjectMetadata(name="bench_a", skip=True), SubjectMetadata(name="bench_b")],
    )
    assert [s.name for s in metadata.iter_subjects()] == ["bench_b"]
    assert [s.name for s in metadata.iter_subjects(include_skipped=True)] == ["bench_a", "bench_b"]
    assert metadata.has_subjects()
    assert metadata.get_subject("bench_a").skip
    assert metadata.get_subject("missing") is None


def test_dump_excludes_runtime_fields():
    metadata = BenchmarkMetadata(class_name="B", benchmark_class=object, subjects=[SubjectMetadata(name="bench_a")])
    dumped = metadata.model_dump()
    assert "benchmark_class" not in dumped
    assert "constraints" not in dumped["subjects"][0]


def test_parameter_set_contents_cannot_be_mutated():
    ps = ParameterSet({"size": 10})
    with pytest.raises(TypeError):
        ps.root["size"] = 1
    copied = ps.as_dict()
    copied["size"] = 2
    assert ps["size"] == 10
    assert ps.model_dump() == {"size": 10}
    assert ParameterSet(ps.root) == ps
