"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Base class for special commands.

Special commands are actions addressed to an item by a path plus a short
list of textual parameters, as typed by a user in a file-manager front end.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence

from mrcloud.cloud import CloudSession


@dataclass(frozen=True)
class SpecialCommandResult:
    """Outcome of a special command."""
    success: bool
    message: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "SpecialCommandResult":
        return cls(True, message)

    @classmethod
    def fail(cls, message: str = "") -> "SpecialCommandResult":
        return cls(False, message)


class SpecialCommand(ABC):
    """
    A command bound to a session, a current path and its parameters.

    Subclasses set ``min_params`` and ``max_params``; construction fails
    with ValueError when the parameter count is out of range.
    """

    name: str = ""
    min_params: int = 0
    max_params: int = 0

    def __init__(self, session: CloudSession, path: str, params: Sequence[str] = ()):
        if not self.min_params <= len(params) <= self.max_params:
            raise ValueError(
                f"{self.name or type(self).__name__} takes {self.min_params} to "
                f"{self.max_params} parameters, got {len(params)}"
            )
        self.session = session
        self.path = path
        self.params: List[str] = list(params)

    @abstractmethod
    async def execute(self) -> SpecialCommandResult:
        """Run the command."""
        pass
