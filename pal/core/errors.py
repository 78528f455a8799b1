"""
Error taxonomy for the PAL engine.

- UnknownEntityError: an id is absent from the dependency graph (fatal)
- MalformedConfigError: rejected constants / weights / thresholds
- MalformedDatasetError: a dataset could not be loaded
- InvalidRequestError: malformed call arguments (empty batch, unknown algorithm)

Cycles in the prerequisite graph are not errors; the recommendation
engine reports them as ``no-candidate`` results.
"""


class PalError(Exception):
    """Base class for all engine errors."""
    pass


class UnknownEntityError(PalError, KeyError):
    """Raised when a skill (or other entity) id is not part of the graph."""

    def __init__(self, entity_id: str, kind: str = "skill"):
        self.entity_id = entity_id
        self.kind = kind
        super().__init__(f'Unknown {kind} "{entity_id}"')

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return self.args[0]


class MalformedConfigError(PalError, ValueError):
    """Raised when a configuration value is not usable. Prior config is kept."""
    pass


class MalformedDatasetError(PalError, ValueError):
    """Raised when graph / prerequisite / ability input cannot be loaded."""
    pass


class InvalidRequestError(PalError, ValueError):
    """Raised for malformed call arguments."""
    pass
