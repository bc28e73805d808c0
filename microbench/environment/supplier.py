"""Supplier: compose environment providers and collect their information.

Public API
- Supplier(providers).get_information() -> Dict[str, Dict[str, Any]]
- create_supplier(names=None, config=None) -> Supplier
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from microbench.core.config import MicrobenchConfig, RunnerConfig
from .base import Provider
from .providers import GitProvider, PythonProvider, UnameProvider

logger = logging.getLogger("microbench.environment")

PROVIDER_FACTORIES: Dict[str, Callable[[], Provider]] = {
    "vcs": GitProvider,
    "uname": UnameProvider,
    "python": PythonProvider,
}


class Supplier:
    def __init__(self, providers: Optional[Iterable[Provider]] = None):
        self.providers: List[Provider] = list(providers or [])

    def add_provider(self, provider: Provider) -> None:
        self.providers.append(provider)

    def get_information(self) -> Dict[str, Dict[str, Any]]:
        information: Dict[str, Dict[str, Any]] = {}
        for provider in self.providers:
            if not provider.is_applicable():
                logger.debug(f"Environment provider {provider.name} not applicable, skipped")
                continue
            info = provider.get_information()
            information[info.name] = info.as_dict()
        return information


def _resolve_names(
    names: Optional[Iterable[str]],
    config: Optional[Union[MicrobenchConfig, RunnerConfig]],
) -> List[str]:
    if names is not None:
        return list(names)
    if isinstance(config, MicrobenchConfig):
        return list(config.runner.env_providers)
    if isinstance(config, RunnerConfig):
        return list(config.env_providers)
    return list(RunnerConfig.from_env().env_providers)


def create_supplier(
    names: Optional[Iterable[str]] = None,
    config: Optional[Union[MicrobenchConfig, RunnerConfig]] = None,
) -> Supplier:
    resolved = _resolve_names(names, config)
    unknown = [n for n in resolved if n not in PROVIDER_FACTORIES]
    if unknown:
        raise ValueError(
            f"Unknown environment provider(s): {', '.join(unknown)}; "
            f"available: {', '.join(PROVIDER_FACTORIES)}"
        )
    logger.debug(f"Creating environment supplier: providers={resolved}")
    return Supplier(PROVIDER_FACTORIES[name]() for name in resolved)
