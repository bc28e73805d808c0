import sqlite3

import pytest

from microbench.adapters.sqlite_adapter import ConnectionManager, SQLiteStorage
from microbench.assertion.evaluator import evaluate
from microbench.assertion.parser import parse
from microbench.core.exceptions import ExpressionError
from microbench.core.models import ParameterSet
from microbench.core.results import BenchmarkResult, Iteration, SubjectResult, SuiteResult, VariantResult


def make_suite(context=None, environment=None, aborted=False):
    suite = SuiteResult(
        context=context,
        environment=environment if environment is not None else {
            "vcs": {"system": "git", "branch": "main", "version": "abc123"},
            "python": {"version": "3.12.1", "cpu_count": 8},
        },
        aborted=aborted,
    )
    bench = BenchmarkResult("StringBench", "bench_strings.py")
    join = SubjectResult("bench_join", groups=["strings", "fast"])
    for index, (size, times) in enumerate([(1, [100.0, 300.0]), (10, [1500.0, 2500.0])]):
        ps = ParameterSet({"size": size, "sep": ","})
        join.variants.append(
            VariantResult(index, ps, [Iteration(i, ps, t, 16, 64) for i, t in enumerate(times)])
        )
    upper = SubjectResult("bench_upper", groups=["strings"])
    empty = ParameterSet()
    upper.variants.append(VariantResult(0, empty, [Iteration(0, empty, 50.0)]))
    bench.subjects.extend([join, upper])
    suite.benchmarks.append(bench)
    return suite


def test_store_returns_run_id(storage):
    result = storage.store(make_suite())
    assert result
    assert result.data == {"run_id": 1}
    assert result.meta == {"variants": 3, "iterations": 5}
    assert storage.store(make_suite()).data["run_id"] == 2


def test_iteration_rows_use_property_names(storage):
    storage.store(make_suite(context="ci"))
    rows = storage.repository.get_iteration_rows()
    assert len(rows) == 5
    first = rows[0]
    assert first["benchmark"] == "StringBench"
    assert first["subject"] == "bench_join"
    assert first["context"] == "ci"
    assert first["iterations"] == 2
    assert first["mean"] == pytest.approx(200.0)
    assert first["time"] == 100.0
    assert first["memory"] == 16
    assert first["mem_peak"] == 64
    assert [r["iteration"] for r in rows[:2]] == [0, 1]


def test_query_by_expression(storage):
    storage.store(make_suite())
    assert len(storage.query("mean > 1 ms")) == 2
    assert len(storage.query("group = 'fast'")) == 4
    assert {r["time"] for r in storage.query("time < 200 us")} == {100.0, 50.0}
    assert storage.query("benchmark = 'Other'") == []


def test_groups_in_insertion_order(storage):
    storage.store(make_suite())
    rows = storage.query("subject = 'bench_join'")
    assert storage.repository.get_groups(rows[0]["subject_id"]) == ["strings", "fast"]


def test_parameters_are_json_decoded(storage):
    storage.store(make_suite())
    rows = storage.query("subject = 'bench_join'")
    params = storage.repository.get_parameters(rows[-1]["variant_id"])
    assert params == {"size": 10, "sep": ","}
    assert isinstance(params["size"], int)


def test_env_information(storage):
    run_id = storage.store(make_suite()).data["run_id"]
    rows = storage.repository.get_run_env_information_rows(run_id)
    by_key = {(r["provider"], r["key"]): r["value"] for r in rows}
    assert by_key[("vcs", "branch")] == "main"
    assert by_key[("python", "cpu_count")] == "8"


def test_history_newest_first_with_branch(storage):
    storage.store(make_suite())
    storage.store(make_suite(context="nightly", environment={"python": {"version": "3.12"}}, aborted=True))
    history = storage.history()
    assert [h["run_id"] for h in history] == [2, 1]
    assert history[0]["vcs_branch"] is None
    assert history[0]["context"] == "nightly"
    assert history[0]["aborted"] == 1
    assert history[1]["vcs_branch"] == "main"


def test_subjects_groups_and_parameters_are_shared_between_runs(storage):
    storage.store(make_suite())
    storage.store(make_suite())
    with storage.manager.cursor() as cur:
        assert cur.execute("SELECT COUNT(*) FROM subject").fetchone()[0] == 2
        assert cur.execute("SELECT COUNT(*) FROM sgroup").fetchone()[0] == 2
        assert cur.execute("SELECT COUNT(*) FROM parameter").fetchone()[0] == 3
        assert cur.execute("SELECT COUNT(*) FROM variant").fetchone()[0] == 6


@pytest.mark.parametrize(
    "expression",
    [
        "mean > 1 ms",
        "group = 'fast' and time < 2 ms",
        "group != 'fast'",
        "not (context = 'ci')",
        "subject = 'bench_upper' or max >= 2500 us",
        "iterations = 2 and not group = 'fast'",
        "benchmark != 'StringBench'",
        "run = 2 and time > 50 us",
        "mem_peak >= 64 or memory = 0",
    ],
)
def test_filter_agrees_with_evaluator(storage, expression):
    storage.store(make_suite())
    storage.store(make_suite(context="ci"))
    constraint = parse(expression)

    def key(row):
        return row["variant_id"], row["iteration"]

    selected = {key(r) for r in storage.query(constraint)}
    for row in storage.repository.get_iteration_rows():
        measurement = dict(row, group=storage.repository.get_groups(row["subject_id"]))
        assert evaluate(constraint, measurement) is (key(row) in selected), row


@pytest.mark.parametrize(
    "expression",
    ["context = 5", "subject > 5", "run = '1'", "mean < 10", "group = 1 or iterations = 2"],
)
def test_mistyped_filter_raises_like_evaluator(storage, expression):
    storage.store(make_suite(context="5"))
    constraint = parse(expression)
    row = storage.repository.get_iteration_rows()[0]
    measurement = dict(row, group=storage.repository.get_groups(row["subject_id"]))

    with pytest.raises(ExpressionError):
        storage.query(constraint)
    with pytest.raises(ExpressionError):
        evaluate(constraint, measurement)


def test_text_context_matches_only_text_literal(storage):
    storage.store(make_suite(context="5"))
    assert len(storage.query("context = '5'")) == len(storage.repository.get_iteration_rows())
    assert storage.query("date > '2000'")


def test_failed_store_rolls_back(storage):
    suite = make_suite()
    suite.benchmarks[0].subjects[0].variants[0].iterations.append("not an iteration")
    with pytest.raises(AttributeError):
        storage.store(suite)
    assert storage.history() == []


def test_file_database_is_created(tmp_path):
    path = tmp_path / "nested" / "runs.sqlite"
    storage = SQLiteStorage(str(path))
    storage.store(make_suite())
    storage.close()

    reopened = SQLiteStorage(str(path))
    assert [h["run_id"] for h in reopened.history()] == [1]
    reopened.close()


def test_old_schema_is_migrated(tmp_path):
    path = tmp_path / "old.sqlite"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE run (id INTEGER PRIMARY KEY AUTOINCREMENT, date TEXT NOT NULL, context TEXT);
        CREATE TABLE variant (
            id INTEGER PRIMARY KEY AUTOINCREMENT, run_id INTEGER NOT NULL, subject_id INTEGER NOT NULL,
            position INTEGER NOT NULL, iterations INTEGER NOT NULL, min REAL, max REAL, sum REAL,
            mean REAL, median REAL, stdev REAL, rstdev REAL, mem_peak INTEGER
        );
        """
    )
    conn.close()

    manager = ConnectionManager(str(path))
    columns = {row[1] for row in manager.get_connection().execute("PRAGMA table_info(variant)")}
    assert {"variance", "failures"} <= columns
    storage = SQLiteStorage(manager=manager)
    assert storage.store(make_suite())
    storage.close()


def test_cursor_is_closed_after_use(storage):
    with storage.manager.cursor() as cur:
        cur.execute("SELECT 1")
    with pytest.raises(sqlite3.ProgrammingError):
        cur.execute("SELECT 1")
