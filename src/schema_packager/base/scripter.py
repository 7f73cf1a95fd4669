"""Scripting service interface."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..exceptions import ExtractionError
from .connection import BaseConnection
from .models import ObjectReference


@dataclass(frozen=True)
class ScriptingOptions:
    """What to include when scripting an object."""

    dri_all: bool = False
    dri_all_constraints: bool = False
    statistics: bool = False
    clustered_indexes: bool = False
    nonclustered_indexes: bool = False
    with_dependencies: bool = False
    script_owner: bool = False

    @property
    def indexes(self) -> bool:
        return self.clustered_indexes or self.nonclustered_indexes


class BaseScripter(ABC):
    """Renders objects of a live database as DDL statements."""

    def __init__(self, connection: BaseConnection):
        self.connection = connection
        self.logger = logging.getLogger(self.__class__.__name__)

    def script(self, reference: ObjectReference, options: ScriptingOptions) -> list[str]:
        """Script one object.

        Returns the statements in creation order; an empty list means the
        object does not exist.
        """
        handler = getattr(self, f"script_{reference.kind.name.lower()}", None)
        if handler is None:
            raise ExtractionError(f"Scripting is not supported for {reference.kind} objects")
        return handler(reference, options)

    @abstractmethod
    def object_exists(self, reference: ObjectReference) -> bool:
        """Check whether the referenced object exists."""
        pass
