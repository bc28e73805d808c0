from __future__ import annotations
import os
import re
import logging
from dataclasses import dataclass, field
import json
from typing import Any, Dict, List, Optional
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)
_ENV_LOADED = False

ENV_PREFIX = "MICROBENCH_"
DEFAULT_FILE_PATTERNS = ("bench_*.py", "*_bench.py")
DEFAULT_ENV_PROVIDERS = ("vcs", "uname", "python")


def load_env_vars(dotenv_path: Optional[Path] = None) -> None:
    """Load environment variables from .env file"""
    global _ENV_LOADED
    if _ENV_LOADED and dotenv_path is None:
        return
    dotenv_path = dotenv_path or Path.cwd() / ".env"
    if not dotenv_path.exists():
        logger.debug(".env file not found")
        _ENV_LOADED = True
        return
    try:
        env_content = dotenv_path.read_text(encoding='utf-8')
    except OSError as e:
        logger.warning(f"Error loading .env file: {e}")
        _ENV_LOADED = True
        return
    for line in env_content.splitlines():
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        match = re.match(r'^([A-Za-z0-9_]+)=(.*)$', line)
        if not match:
            continue
        key, value = match.groups()
        if key in os.environ:
            continue
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        else:
            comment_pos = value.find('#')
            if comment_pos >= 0:
                value = value[:comment_pos].strip()
        os.environ[key] = value
    _ENV_LOADED = True


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: tuple) -> List[str]:
    raw = _env(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class RunnerConfig:
    """Runner Configuration"""
    default_iterations: int = 1
    # traced in an extra untimed pass per iteration
    measure_memory: bool = False
    subject_prefix: str = "bench"
    file_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_FILE_PATTERNS))
    # environment providers gathered before a run
    env_providers: List[str] = field(default_factory=lambda: list(DEFAULT_ENV_PROVIDERS))
    context: Optional[str] = None

    def __post_init__(self):
        if self.default_iterations < 1:
            raise ValueError(f"default_iterations must be at least 1, got {self.default_iterations}")

    @classmethod
    def from_env(cls) -> 'RunnerConfig':
        load_env_vars()
        return cls(
            default_iterations=int(_env("ITERATIONS", "1")),
            measure_memory=_env_bool("MEASURE_MEMORY", False),
            subject_prefix=_env("SUBJECT_PREFIX", "bench"),
            file_patterns=_env_list("FILE_PATTERNS", DEFAULT_FILE_PATTERNS),
            env_providers=_env_list("ENV_PROVIDERS", DEFAULT_ENV_PROVIDERS),
            context=_env("CONTEXT"),
        )


@dataclass
class DatabaseConfig:
    # None disables the historical store
    path: Optional[str] = None
    timeout: int = 30

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        load_env_vars()
        return cls(
            path=_env("DB_PATH"),
            timeout=int(_env("DB_TIMEOUT", "30")),
        )


@dataclass
class MicrobenchConfig:
    runner: RunnerConfig
    database: DatabaseConfig
    schema_path: Optional[str] = None
    log_level: str = field(default_factory=lambda: os.getenv("MICROBENCH_LOG_LEVEL", "INFO"))

    @classmethod
    def from_env(cls) -> 'MicrobenchConfig':
        return cls(
            runner=RunnerConfig.from_env(),
            database=DatabaseConfig.from_env(),
            schema_path=_env("SCHEMA_PATH"),
            log_level=_env("LOG_LEVEL", "INFO"),
        )

    @classmethod
    def default(cls) -> 'MicrobenchConfig':
        return cls(runner=RunnerConfig(), database=DatabaseConfig(), log_level=_env("LOG_LEVEL", "INFO"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MicrobenchConfig':
        runner = data.get("runner") or {}
        database = data.get("database") or {}
        unknown = set(data) - {"runner", "database", "schema_path", "log_level"}
        if unknown:
            raise ValueError(f"Unknown configuration section(s): {', '.join(sorted(unknown))}")
        try:
            return cls(
                runner=RunnerConfig(**runner),
                database=DatabaseConfig(**database),
                schema_path=data.get("schema_path"),
                log_level=data.get("log_level") or _env("LOG_LEVEL", "INFO"),
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> 'MicrobenchConfig':
        """Load a YAML (``.yml``/``.yaml``) or JSON configuration file"""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yml", ".yaml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        logger.debug(f"Loaded configuration from {path}")
        return cls.from_dict(data)
