import pytest

from microbench.core.reflection import InvocationError, ModuleReflector, ReflectionInvoker


class Sample:
    def bench_a(self):
        pass

    def provide(self):
        return [{"a": 1}]

    @staticmethod
    def static_hook():
        return "static"

    @classmethod
    def class_hook(cls):
        return cls.__name__

    def broken(self):
        raise KeyError("nope")


def test_reflect_class_marks_static_methods():
    reflected = ModuleReflector().reflect_class(Sample)
    assert reflected.name == "Sample"
    assert not reflected.get_method("bench_a").is_static
    assert reflected.get_method("static_hook").is_static
    assert reflected.get_method("class_hook").is_static
    assert not reflected.is_abstract


def test_invoker():
    reflected = ModuleReflector().reflect_class(Sample)
    invoker = ReflectionInvoker()
    assert invoker.exists(reflected, "provide")
    assert not invoker.exists(reflected, "missing")
    assert invoker.invoke(reflected, "provide") == [{"a": 1}]
    assert invoker.invoke(reflected, "static_hook") == "static"
    assert invoker.invoke(reflected, "class_hook") == "Sample"


def test_invoker_wraps_failures():
    reflected = ModuleReflector().reflect_class(Sample)
    invoker = ReflectionInvoker()
    with pytest.raises(InvocationError):
        invoker.invoke(reflected, "broken")
    with pytest.raises(InvocationError):
        invoker.invoke(reflected, "missing")
    with pytest.raises(InvocationError):
        invoker.is_static(reflected, "missing")


def test_reflect_file(fixtures_dir):
    reflector = ModuleReflector()
    reflected = reflector.reflect_file(fixtures_dir / "bench_lists.py")
    assert reflected.name == "ListBench"
    assert reflected.path.endswith("bench_lists.py")
    assert reflected.metadata["before_class_methods"] == ["set_up_class"]
    assert reflector.reflect_file(fixtures_dir / "no_bench.py") is None


def test_reflect_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ModuleReflector().reflect_file(tmp_path / "missing.py")


def test_last_benchmark_class_wins(write_bench):
    path = write_bench(
        "bench_two.py",
        """
        class First:
            def bench_a(self):
                pass

        class Second:
            def bench_b(self):
                pass
        """,
    )
    assert ModuleReflector().reflect_file(path).name == "Second"
