"""Transaction scopes around a document.

All creation code mutates the document inside ``TransactionCoordinator.scope``.
The scope commits on every exit path, including when the body raises, so
work finished before a failure stays in the model. Scopes do not nest; the
only way to split work inside a scope is ``force_intermediate_commit``, which
commits and immediately reopens under the same name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from storey_builder.errors import TransactionError
from storey_builder.models.document import Document, TransactionRecord

logger = logging.getLogger(__name__)


class TransactionCoordinator:
    """Owns the open transaction on one document for the duration of a scope."""

    def __init__(self, document: Document):
        self.document = document
        self._name: str | None = None

    @property
    def active(self) -> bool:
        return self._name is not None

    @contextmanager
    def scope(self, name: str) -> Iterator[TransactionCoordinator]:
        """Open a transaction, run the body, commit whatever happened."""
        if self._name is not None:
            raise TransactionError(
                f"Cannot open '{name}' inside '{self._name}': scopes are not reentrant"
            )
        self.document.start_transaction(name)
        self._name = name
        try:
            yield self
        finally:
            self._name = None
            record = self.document.commit_transaction()
            self._log_commit(record)

    def force_intermediate_commit(self) -> TransactionRecord:
        """Commit pending work and reopen, so later steps see it as durable."""
        if self._name is None:
            raise TransactionError("force_intermediate_commit needs an open scope")
        record = self.document.commit_transaction()
        self._log_commit(record)
        self.document.start_transaction(self._name)
        return record

    @staticmethod
    def _log_commit(record: TransactionRecord) -> None:
        logger.debug(
            "Committed '%s': %d created, %d modified",
            record.name, len(record.created), len(record.modified),
        )
