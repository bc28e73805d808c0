# microbench/adapters/base.py
"""
Microbench Storage Base Module

This module defines the interface of historical result stores and the data
structure returned when a suite is persisted. Concrete stores (such as the
SQLite store) inherit from BaseStorage.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from microbench.assertion.ast import Node
from microbench.core.results import SuiteResult


@dataclass
class StorageResult:
    """
    Storage Operation Result

    Uniformly represents the outcome of persisting a suite, including
    success status, data (e.g. the new run id) and error message.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None

    def __bool__(self) -> bool:
        """Allow direct use in conditional expressions to check if the operation succeeded"""
        return self.success


class BaseStorage(ABC):
    """
    Storage Base Class

    A store persists suite results and answers historical queries expressed
    with the assertion language.
    """

    @abstractmethod
    def store(self, suite: SuiteResult) -> StorageResult:
        """
        Persist a suite result

        Args:
            suite: Completed (or aborted) suite result

        Returns:
            StorageResult: ``data["run_id"]`` holds the id of the new run
        """

    @abstractmethod
    def query(self, constraint: Union[Node, str]) -> List[Dict[str, Any]]:
        """
        Return iteration rows matching a constraint

        Args:
            constraint: Assertion AST or expression string

        Returns:
            Rows keyed by property name (``benchmark``, ``subject``, ``mean``, ``time`` ...)
        """

    @abstractmethod
    def history(self) -> List[Dict[str, Any]]:
        """Return one row per stored run, newest first"""

    def close(self) -> None:
        """
        Close the store

        Releases held resources (such as database connections). Default
        implementation is empty.
        """
        pass
