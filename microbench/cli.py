#!/usr/bin/env python3
"""Command-line interface for microbench.

Usage:
    microbench run benchmarks/ --iterations 5 --store
    microbench run bench_strings.py --filter "::bench_join" --group fast
    microbench history
    microbench query "subject = 'bench_join' and mean < 10 ms"
    microbench validate results.json
"""
from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from jsonschema import exceptions as schema_exceptions

from microbench.core.config import MicrobenchConfig
from microbench.core.engine import BenchEngine
from microbench.core.exceptions import ExecutionFailure, MicrobenchError
from microbench.core.results import SuiteResult
from microbench.core.validate import validate_document


def echo(msg: str):
    print(msg, flush=True)


class BenchCLI:
    """Command-line interface for benchmark operations."""

    def __init__(self, config: MicrobenchConfig, db_path: Optional[str] = None):
        if db_path:
            config.database.path = db_path
        self.config = config
        self.engine = BenchEngine(config)

    def run(
        self,
        paths: List[str],
        filter_expr: Optional[str] = None,
        groups: Optional[List[str]] = None,
        iterations: Optional[int] = None,
        context: Optional[str] = None,
        store: bool = False,
        output: Optional[str] = None,
    ) -> int:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: self.engine.abort())
        try:
            suite = self.engine.run(
                paths, filter=filter_expr, groups=groups, iterations=iterations, context=context
            )
        except ExecutionFailure as e:
            echo(f"❌ {e}")
            if e.suite is not None and e.suite.iteration_count:
                self._summary(e.suite)
            return 1
        finally:
            signal.signal(signal.SIGINT, previous)

        self._summary(suite)

        if output:
            self.engine.dump(suite, output)
            echo(f"📄 Results written to {output}")
        if store:
            result = self.engine.store(suite)
            if not result:
                echo(f"❌ Failed to store run: {result.error}")
                return 1
            echo(f"💾 Stored as run #{result.data['run_id']}")

        if suite.aborted:
            echo("⚠️  Run aborted, partial results kept")
            return 130
        return 1 if suite.has_failures else 0

    def _summary(self, suite: SuiteResult) -> None:
        for benchmark, subject, variant in suite.iter_variants():
            stats = variant.stats
            if stats is None:
                continue
            mark = "✅" if variant.passed else "❌"
            echo(
                f"{mark} {benchmark.class_name}::{subject.name} #{variant.index} "
                f"{variant.parameters.as_dict()} iterations={stats.count} "
                f"mean={stats.mean:.3f}μs rstdev={stats.rstdev:.2f}% mem_peak={variant.mem_peak}b"
            )
        for class_name, subject_name, index, failure in suite.failures:
            echo(f"   {class_name}::{subject_name} #{index}: {failure.message}")
        echo(
            f"{len(suite.benchmarks)} benchmark(s), {suite.iteration_count} iteration(s), "
            f"{len(suite.failures)} assertion failure(s)"
        )

    def history(self) -> int:
        if self.engine.storage is None:
            echo("❌ No database configured (use --db or MICROBENCH_DB_PATH)")
            return 1
        rows = self.engine.storage.history()
        if not rows:
            echo("No runs stored")
            return 0
        for row in rows:
            branch = row["vcs_branch"] or "-"
            context = row["context"] or "-"
            echo(f"#{row['run_id']}  {row['run_date']}  branch={branch}  context={context}")
        return 0

    def query(self, expression: str) -> int:
        if self.engine.storage is None:
            echo("❌ No database configured (use --db or MICROBENCH_DB_PATH)")
            return 1
        rows = self.engine.storage.query(expression)
        for row in rows:
            echo(
                f"run #{row['run']} {row['benchmark']}::{row['subject']} #{row['variant']} "
                f"iteration {row['iteration']}: {row['time']:.3f}μs (mean {row['mean']:.3f}μs)"
            )
        echo(f"{len(rows)} row(s)")
        return 0

    def validate(self, path: str) -> int:
        try:
            document = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            echo(f"❌ Cannot read {path}: {e}")
            return 1
        result = validate_document(document, self.config.schema_path)
        if result.valid:
            echo(f"✅ {path} is a valid suite document")
            return 0
        echo(f"❌ {result.error}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="microbench",
        description="Micro-benchmark runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="YAML or JSON configuration file (default: from MICROBENCH_* env)")
    parser.add_argument("--db", default=None, help="SQLite database of stored runs (default: MICROBENCH_DB_PATH)")
    parser.add_argument("--log-level", default=None, help="Logging level (default: MICROBENCH_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run benchmarks")
    run_parser.add_argument("paths", nargs="+", help="Benchmark files or directories")
    run_parser.add_argument("--filter", help="Regular expression matched against 'Class::subject'")
    run_parser.add_argument("--group", action="append", dest="groups", default=None,
                            help="Only run subjects in this group (repeatable)")
    run_parser.add_argument("--iterations", type=int, default=None, help="Override iterations of every subject")
    run_parser.add_argument("--context", default=None, help="Tag stored with the run")
    run_parser.add_argument("--memory", action="store_true", help="Also trace memory, in an untimed extra call per iteration")
    run_parser.add_argument("--store", action="store_true", help="Persist the run in the database")
    run_parser.add_argument("--output", "-o", help="Write the suite document to this JSON file")

    subparsers.add_parser("history", help="List stored runs, newest first")

    query_parser = subparsers.add_parser("query", help="List stored iterations matching an expression")
    query_parser.add_argument("expression", help="e.g. \"benchmark = 'StringBench' and mean > 1 ms\"")

    validate_parser = subparsers.add_parser("validate", help="Validate a suite document")
    validate_parser.add_argument("path", help="JSON file written by 'run --output'")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = MicrobenchConfig.from_file(args.config) if args.config else MicrobenchConfig.from_env()
        logging.basicConfig(
            level=(args.log_level or config.log_level).upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        if getattr(args, "memory", False):
            config.runner.measure_memory = True
        cli = BenchCLI(config, db_path=args.db)

        try:
            if args.command == "run":
                if args.iterations is not None and args.iterations < 1:
                    echo("❌ Error: --iterations must be at least 1")
                    return 2
                return cli.run(
                    args.paths,
                    filter_expr=args.filter,
                    groups=args.groups,
                    iterations=args.iterations,
                    context=args.context,
                    store=args.store,
                    output=args.output,
                )
            elif args.command == "history":
                return cli.history()
            elif args.command == "query":
                return cli.query(args.expression)
            elif args.command == "validate":
                return cli.validate(args.path)
            else:
                parser.print_help()
                return 0
        finally:
            cli.engine.close()
    except KeyboardInterrupt:
        echo("\n⚠️  Interrupted by user")
        return 130
    except (MicrobenchError, schema_exceptions.ValidationError, FileNotFoundError, ValueError) as e:
        echo(f"❌ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
