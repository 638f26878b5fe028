"""Exception types raised at the edges of the compiler."""

from typing import Optional


class CompilerError(Exception):
    """Base class for all process_rule_compiler errors."""


class DocumentError(CompilerError):
    """A JSON document could not be read into a model object."""


class UnknownNodeTypeError(DocumentError):
    """A graph node carries a type string outside the known node kinds."""

    def __init__(self, node_type: str):
        self.node_type = node_type
        super().__init__(f"Unknown node type: {node_type!r}")


class PhaseCycleError(CompilerError):
    """A phase appears inside its own sub-phase chain."""

    def __init__(self, phase_id: str):
        self.phase_id = phase_id
        super().__init__(f"Phase {phase_id!r} is nested inside itself")


class ProcessServiceError(CompilerError):
    """The persistence API returned an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Connection failures and 5xx responses are worth retrying."""
        return self.status_code is None or self.status_code >= 500
