"""Hands aggregated scripts to the package builder."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

import click

from .base.builder import BasePackageBuilder, PackageMetadata
from .base.models import Diagnostic, DiagnosticKind
from .exceptions import BuildError

logger = logging.getLogger(__name__)


@dataclass
class BuildOutcome:
    """Result of one packaging attempt."""

    success: bool
    path: Path
    script_count: int
    diagnostic: Optional[Diagnostic] = None

    @property
    def message(self) -> str:
        if self.diagnostic is not None:
            return self.diagnostic.message
        return f"DAC package created: {self.path}"


class PackageAssembler:
    """Compiles the scripts of a run into a single package file."""

    def __init__(self, builder: BasePackageBuilder, echo: Callable[[str], None] = click.echo):
        self.builder = builder
        self._echo = echo

    def assemble(
        self,
        scripts: Iterable[str],
        path: Path,
        metadata: Optional[PackageMetadata] = None,
    ) -> BuildOutcome:
        """Add every script as one parse unit and build the package.

        The builder is invoked even when there are no scripts. A failed build
        is reported in the outcome; any partially written file is left as is.
        """
        metadata = metadata or PackageMetadata()
        self._echo("\n------- Building DacPac -------")

        count = 0
        try:
            for script in scripts:
                self.builder.add_objects(script)
                count += 1
            if count == 0:
                logger.warning("No scripts were found to package")
            written = self.builder.build(Path(path), metadata)
        except BuildError as e:
            logger.error(f"Package build failed: {e}")
            self._echo("DAC creation failed:")
            self._echo(f"Error: {e}")
            return BuildOutcome(
                success=False,
                path=Path(path),
                script_count=count,
                diagnostic=Diagnostic(kind=DiagnosticKind.BUILD_ERROR, message=str(e)),
            )

        self._echo("DAC package created.")
        logger.info(f"Wrote {count} scripts to {written} ({self.builder.dialect.name})")
        return BuildOutcome(success=True, path=written, script_count=count)
