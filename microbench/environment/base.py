"""Environment information gathered alongside a run."""
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class Information:
    """Key/value facts reported by one provider"""
    name: str
    values: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.values)


class Provider(ABC):
    name: str = ""

    def is_applicable(self) -> bool:
        """Whether the provider can report anything in the current environment"""
        return True

    @abstractmethod
    def get_information(self) -> Information:
        pass
