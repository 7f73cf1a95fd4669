"""Package builder interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from ..config import TargetDialect


@dataclass(frozen=True)
class PackageMetadata:
    """Name, description and version stamped into a package."""

    name: str = "Mini_DacPac"
    description: str = "Built by schema-packager."
    version: str = "1.0"


class BasePackageBuilder(ABC):
    """Compiles an ordered set of scripts into one package file."""

    def __init__(self, dialect: TargetDialect):
        self.dialect = dialect
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def add_objects(self, script: str) -> None:
        """Add one parse unit to the model."""
        pass

    @abstractmethod
    def build(self, path: Path, metadata: PackageMetadata) -> Path:
        """Write the package, raising BuildError on failure."""
        pass
