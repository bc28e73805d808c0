from .base import Information, Provider
from .providers import GitProvider, PythonProvider, UnameProvider
from .supplier import PROVIDER_FACTORIES, Supplier, create_supplier

__all__ = [
    "Information",
    "Provider",
    "GitProvider",
    "PythonProvider",
    "UnameProvider",
    "PROVIDER_FACTORIES",
    "Supplier",
    "create_supplier",
]
