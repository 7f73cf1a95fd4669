"""Tracks the single active database connection of a run."""

import logging
from typing import Callable, Optional

import click

from .base.connection import BaseConnection
from .base.models import Diagnostic, DiagnosticKind, ObjectKind, ObjectReference
from .exceptions import BackendNotAvailableError, ConnectionError

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[ObjectReference], BaseConnection]


class ConnectionRegistry:
    """Holds at most one open connection.

    Each ``db:`` line replaces the active connection; the previous one is
    closed first. A failed connect leaves the registry empty so later object
    lines report a missing connection instead of aborting the run.
    """

    def __init__(self, factory: ConnectionFactory, echo: Callable[[str], None] = click.echo):
        self._factory = factory
        self._echo = echo
        self._current: Optional[BaseConnection] = None

    def current(self) -> Optional[BaseConnection]:
        """Get the active connection, or None when there is none."""
        return self._current

    def set(self, reference: ObjectReference) -> Optional[Diagnostic]:
        """Replace the active connection with one opened from ``reference``.

        Returns a diagnostic when the connection could not be opened.
        """
        if reference.kind is not ObjectKind.CONNECTION:
            raise ValueError(f"Not a connection reference: {reference.raw_text}")

        self.close()

        try:
            connection = self._factory(reference)
            connection.connect()
        except (ConnectionError, BackendNotAvailableError) as e:
            logger.warning(f"Unable to connect to {reference.server_name}.{reference.database_name}: {e}")
            self._echo("*** Error: Unable to connect to database.")
            self._echo(str(e))
            return Diagnostic(
                kind=DiagnosticKind.CONNECTION_ERROR,
                message=(
                    f"Unable to connect to database: {reference.server_name}."
                    f"{reference.database_name} ({e})"
                ),
                reference=reference,
            )

        self._current = connection
        self._echo(f"Connected to: {connection.describe()}")
        return None

    def close(self) -> None:
        """Release the active connection, if any."""
        if self._current is None:
            return
        try:
            self._current.disconnect()
        finally:
            self._current = None

    def __enter__(self) -> "ConnectionRegistry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
