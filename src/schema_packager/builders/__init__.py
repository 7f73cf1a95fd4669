"""Package builders."""

from .dacpac import DacpacBuilder

__all__ = ["DacpacBuilder"]
