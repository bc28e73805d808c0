"""
Shared pytest configuration for unit tests.
Ensures project root is on sys.path and provides common fixtures.
"""
import sys
import textwrap
from pathlib import Path
import pytest

# Add project root
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

FIXTURES = Path(__file__).resolve().parent / "fixtures"

from microbench.adapters.sqlite_adapter import SQLiteStorage
from microbench.core.factory import MetadataFactory
from microbench.core.reflection import ModuleReflector
from microbench.environment.supplier import Supplier


@pytest.fixture()
def fixtures_dir():
    return FIXTURES


@pytest.fixture()
def factory():
    return MetadataFactory()


@pytest.fixture()
def reflect():
    reflector = ModuleReflector()

    def _reflect(cls):
        return reflector.reflect_class(cls)
    return _reflect


@pytest.fixture()
def build(factory, reflect):
    """Reflect a benchmark class and build its metadata."""
    def _build(cls):
        return factory.build_from_reflected_class(reflect(cls))
    return _build


@pytest.fixture()
def storage():
    store = SQLiteStorage(":memory:")
    yield store
    store.close()


@pytest.fixture()
def empty_supplier():
    return Supplier([])


@pytest.fixture()
def write_bench(tmp_path):
    """Write a benchmark source file under tmp_path and return its path."""
    def _write(name, source):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path
    return _write
