"""Drives an object list through parsing, extraction and aggregation."""

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

import click

from .aggregator import ScriptAggregator
from .base.models import Diagnostic, DiagnosticKind, ExtractedScript, ObjectKind
from .dispatcher import ExtractionDispatcher
from .exceptions import ObjectListError, ObjectListNotFoundError, PipelineStateError
from .parser import parse_line
from .registry import ConnectionRegistry
from .textfiles import read_text

logger = logging.getLogger(__name__)

COMMENT_PREFIXES = ("--", "//")


class PipelineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


def is_comment(line: str) -> bool:
    return line.lstrip().startswith(COMMENT_PREFIXES)


def read_object_list(path: Path) -> list[str]:
    """Read the lines of an object list file."""
    try:
        return read_text(path).splitlines()
    except FileNotFoundError as e:
        raise ObjectListNotFoundError(f"Object list file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ObjectListError(f"Unable to read object list {path}: {e}") from e


class PipelineDriver:
    """Processes the lines of one object list, once.

    The registry holds the active connection; it is passed to the dispatcher
    for every object line and closed when the run finishes.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        dispatcher: Optional[ExtractionDispatcher] = None,
        aggregator: Optional[ScriptAggregator] = None,
        echo_scripts: bool = False,
        echo: Callable[[str], None] = click.echo,
    ):
        self.registry = registry
        self.dispatcher = dispatcher or ExtractionDispatcher(echo=echo)
        self.aggregator = aggregator or ScriptAggregator()
        self.echo_scripts = echo_scripts
        self._echo = echo
        self.state = PipelineState.IDLE

    def run_file(self, path: Path) -> ScriptAggregator:
        """Read an object list file and process it."""
        return self.run(read_object_list(path))

    def run(self, lines: Iterable[str]) -> ScriptAggregator:
        """Process every line in order and return the aggregated results."""
        if self.state is not PipelineState.IDLE:
            raise PipelineStateError("A pipeline driver can only be run once")

        self.state = PipelineState.RUNNING
        self._echo("------- Extracting scripts from database/s and/or files -------")
        try:
            with self.registry:
                for line in lines:
                    self._process_line(line)
        finally:
            self.state = PipelineState.DONE

        logger.info(
            f"Processed object list: {len(self.aggregator)} scripts, "
            f"{len(self.aggregator.missing)} missing"
        )
        return self.aggregator

    def _process_line(self, line: str) -> None:
        if not line.strip() or is_comment(line):
            return

        reference = parse_line(line)
        logger.debug(f"Parsed {line!r} as {reference.kind}")

        if reference.kind is ObjectKind.PARSE_ERROR:
            self.aggregator.add_missing(
                Diagnostic(
                    kind=DiagnosticKind.PARSE_ERROR,
                    message=f"Unable to parse SQL object from string: {reference.name}",
                    reference=reference,
                )
            )
            return

        if reference.kind is ObjectKind.CONNECTION:
            diagnostic = self.registry.set(reference)
            if diagnostic is not None:
                self.aggregator.add_connection_error(diagnostic)
            return

        extraction = self.dispatcher.dispatch(reference, self.registry.current())
        if extraction.diagnostic is not None:
            self.aggregator.add_missing(extraction.diagnostic)
            return

        script = extraction.script
        self.aggregator.add_script(ExtractedScript(text=script, reference=reference))
        if self.echo_scripts:
            self._echo(script)
