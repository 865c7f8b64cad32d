"""Exception hierarchy.

ArgumentError and GeometryError are ValueErrors, TransactionError is a
RuntimeError, so callers catching the builtin types keep working.
"""

from __future__ import annotations


class StoreyBuilderError(Exception):
    """Base class for all errors raised by storey_builder."""


class ArgumentError(StoreyBuilderError, ValueError):
    """A required input is absent or not of a recognized kind.

    Always raised before the target model is touched.
    """


class GeometryError(StoreyBuilderError, ValueError):
    """A surface or loop cannot be turned into floor geometry."""

    def __init__(
        self,
        message: str,
        floor_index: int | None = None,
        surface_index: int | None = None,
        loop_index: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.floor_index = floor_index
        self.surface_index = surface_index
        self.loop_index = loop_index

    def __str__(self) -> str:
        where = []
        if self.floor_index is not None:
            where.append(f"floor {self.floor_index}")
        if self.surface_index is not None:
            where.append(f"surface {self.surface_index}")
        if self.loop_index is not None:
            where.append(f"loop {self.loop_index}")
        if not where:
            return self.message
        return f"{self.message} ({', '.join(where)})"


class TransactionError(StoreyBuilderError, RuntimeError):
    """The document was mutated outside of, or across, a transaction."""


class ConversionError(StoreyBuilderError):
    """Every conversion strategy failed to build a shape from a solid.

    ``attempts`` is a list of (strategy name, exception) pairs in the order
    they were tried. The first failure is chained as ``__cause__``.
    """

    def __init__(self, message: str, attempts: list[tuple[str, Exception]] | None = None):
        super().__init__(message)
        self.attempts = list(attempts or [])
