import json
import os

import pytest

from microbench.core import config as config_module
from microbench.core.config import DatabaseConfig, MicrobenchConfig, RunnerConfig, load_env_vars


def test_defaults():
    cfg = MicrobenchConfig.default()
    assert cfg.runner.default_iterations == 1
    assert cfg.runner.measure_memory is False
    assert cfg.runner.file_patterns == ["bench_*.py", "*_bench.py"]
    assert cfg.runner.env_providers == ["vcs", "uname", "python"]
    assert cfg.database.path is None


def test_from_env(monkeypatch):
    monkeypatch.setenv("MICROBENCH_ITERATIONS", "4")
    monkeypatch.setenv("MICROBENCH_MEASURE_MEMORY", "true")
    monkeypatch.setenv("MICROBENCH_FILE_PATTERNS", "perf_*.py, *_perf.py")
    monkeypatch.setenv("MICROBENCH_ENV_PROVIDERS", "python")
    monkeypatch.setenv("MICROBENCH_DB_PATH", "/tmp/runs.sqlite")
    monkeypatch.setenv("MICROBENCH_DB_TIMEOUT", "5")
    monkeypatch.setenv("MICROBENCH_LOG_LEVEL", "DEBUG")

    cfg = MicrobenchConfig.from_env()
    assert cfg.runner.default_iterations == 4
    assert cfg.runner.measure_memory is True
    assert cfg.runner.file_patterns == ["perf_*.py", "*_perf.py"]
    assert cfg.runner.env_providers == ["python"]
    assert cfg.database == DatabaseConfig(path="/tmp/runs.sqlite", timeout=5)
    assert cfg.log_level == "DEBUG"


def test_runner_config_rejects_zero_iterations():
    with pytest.raises(ValueError):
        RunnerConfig(default_iterations=0)


def test_from_yaml_file(tmp_path):
    path = tmp_path / "microbench.yaml"
    path.write_text(
        "runner:\n"
        "  default_iterations: 3\n"
        "  env_providers: [python]\n"
        "database:\n"
        "  path: runs.sqlite\n"
        "log_level: WARNING\n",
        encoding="utf-8",
    )
    cfg = MicrobenchConfig.from_file(path)
    assert cfg.runner.default_iterations == 3
    assert cfg.runner.env_providers == ["python"]
    assert cfg.database.path == "runs.sqlite"
    assert cfg.log_level == "WARNING"


def test_from_json_file(tmp_path):
    path = tmp_path / "microbench.json"
    path.write_text(json.dumps({"runner": {"measure_memory": True}}), encoding="utf-8")
    cfg = MicrobenchConfig.from_file(path)
    assert cfg.runner.measure_memory is True
    assert cfg.database.timeout == 30


def test_invalid_files(tmp_path):
    unknown = tmp_path / "unknown.json"
    unknown.write_text(json.dumps({"runnr": {}}), encoding="utf-8")
    with pytest.raises(ValueError, match="runnr"):
        MicrobenchConfig.from_file(unknown)

    bad_key = tmp_path / "bad.yml"
    bad_key.write_text("runner:\n  speed: 3\n", encoding="utf-8")
    with pytest.raises(ValueError):
        MicrobenchConfig.from_file(bad_key)

    not_mapping = tmp_path / "list.yaml"
    not_mapping.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        MicrobenchConfig.from_file(not_mapping)


def test_dotenv_loader(tmp_path, monkeypatch):
    monkeypatch.delenv("MICROBENCH_CONTEXT", raising=False)
    monkeypatch.delenv("MICROBENCH_DB_PATH", raising=False)
    monkeypatch.setenv("MICROBENCH_LOG_LEVEL", "ERROR")
    dotenv = tmp_path / ".env"
    dotenv.write_text(
        "# comment\n"
        "MICROBENCH_CONTEXT='nightly'\n"
        "MICROBENCH_DB_PATH=runs.sqlite  # local db\n"
        "MICROBENCH_LOG_LEVEL=DEBUG\n",
        encoding="utf-8",
    )
    load_env_vars(dotenv)

    assert os.environ["MICROBENCH_CONTEXT"] == "nightly"
    assert os.environ["MICROBENCH_DB_PATH"] == "runs.sqlite"
    # existing variables win
    assert os.environ["MICROBENCH_LOG_LEVEL"] == "ERROR"
    os.environ.pop("MICROBENCH_CONTEXT")
    os.environ.pop("MICROBENCH_DB_PATH")
    assert config_module._ENV_LOADED
