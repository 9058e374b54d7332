"""Error hierarchy for block generation and style recompilation.

All blockgen errors inherit from BlockgenError so callers can catch the
family at a single seam.
"""


class BlockgenError(Exception):
    """Base error for all blockgen operations."""


class NotFoundError(BlockgenError):
    """A referenced post or partial does not exist."""


class MalformedDataError(BlockgenError):
    """Stored JSON (selected partials, settings, attributes) failed to parse."""


class StoreWriteError(BlockgenError):
    """The metadata store rejected a read or write."""


class ConfigError(BlockgenError, ValueError):
    """Invalid or missing configuration."""


class ReentrantGenerationError(BlockgenError):
    """File generation was requested while a generation pass was already running."""


class CompilationError(BlockgenError):
    """SCSS compilation failure reported back by the external compiler."""

    def __init__(
        self,
        post_id: int,
        slot: str,
        message: str,
        line: int | None = None,
        column: int | None = None,
        ) -> None:
        self.post_id = post_id
        self.slot = slot
        self.message = message
        self.line = line
        self.column = column
        super().__init__(self.describe())

    def describe(self) -> str:
        """Human-readable one-liner suitable for a UI toast."""
        where = ""
        if self.line is not None:
            where = f" (line {self.line}" + (f", column {self.column}" if self.column is not None else "") + ")"
        return f"Block {self.post_id} [{self.slot}]: {self.message}{where}"

    def to_dict(self) -> dict:
        return {
            "post_id": self.post_id,
            "slot": self.slot,
            "message": self.message,
            "line": self.line,
            "column": self.column,
        }
