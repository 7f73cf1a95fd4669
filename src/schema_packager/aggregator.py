"""Accumulates extracted scripts and unresolved references."""

from typing import Iterator

from .base.models import Diagnostic, ExtractedScript


class ScriptAggregator:
    """Append-only, ordered store of a run's results.

    No deduplication and no inspection of the SQL itself.
    """

    def __init__(self) -> None:
        self._scripts: list[ExtractedScript] = []
        self._missing: list[Diagnostic] = []
        self._connection_errors: list[Diagnostic] = []
        self._reported: list[Diagnostic] = []

    def add_script(self, script: ExtractedScript) -> None:
        self._scripts.append(script)

    def add_missing(self, diagnostic: Diagnostic) -> None:
        self._missing.append(diagnostic)
        self._reported.append(diagnostic)

    def add_connection_error(self, diagnostic: Diagnostic) -> None:
        """Record a failed db: line; these are reported but are not missing objects."""
        self._connection_errors.append(diagnostic)
        self._reported.append(diagnostic)

    @property
    def scripts(self) -> list[str]:
        return [script.text for script in self._scripts]

    @property
    def extracted(self) -> tuple[ExtractedScript, ...]:
        return tuple(self._scripts)

    @property
    def missing(self) -> list[str]:
        return [diagnostic.message for diagnostic in self._missing]

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return tuple(self._missing)

    @property
    def connection_errors(self) -> tuple[Diagnostic, ...]:
        return tuple(self._connection_errors)

    def __iter__(self) -> Iterator[str]:
        return iter(self.scripts)

    def __len__(self) -> int:
        return len(self._scripts)

    def summary_lines(self) -> list[str]:
        """Lines of the end-of-run report, empty when nothing went wrong."""
        if not self._reported:
            return []
        lines = ["", "***** Script reading errors and warnings:"]
        lines.extend(f"***  {diagnostic}" for diagnostic in self._reported)
        return lines
