"""Host tool capabilities."""

from .tools import HostTools, NullHostTools, SystemHostTools

__all__ = ["HostTools", "NullHostTools", "SystemHostTools"]
