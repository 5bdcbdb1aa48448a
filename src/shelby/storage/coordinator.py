"""Keeps the document area and the metadata store consistent.

No transaction spans both substrates, so operations are ordered instead:

* create: write the file, then commit the metadata; if the commit fails the
  file is removed again.
* delete: commit the metadata removal, then remove the file; if removing the
  file fails it is left as an orphan for the sweep.

A file without a metadata row is therefore possible (and swept), while a
metadata row without a file is a consistency violation.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy import func, select

from shelby.database.base import Database, Transaction
from shelby.database.mappers import document_to_domain
from shelby.database.models import Document, Entry, Person, User
from shelby.domain import entities
from shelby.domain.errors import (
    DocumentFileMissing,
    InternalConsistencyError,
    NotFoundError,
    ReferentialConflict,
    StorageIoError,
    delete_blocked,
    document_not_found,
    person_not_found,
    user_not_found,
)
from shelby.storage.documents import DocumentHandle, DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Attach = Callable[[Transaction, Document], T]


@dataclass
class AuditReport:
    """Findings of a consistency audit. Nothing is repaired."""

    missing_files: list[int] = field(default_factory=list)
    orphan_files: list[str] = field(default_factory=list)
    reference_mismatches: list[int] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        # Orphan files are expected after interrupted creates
        return not self.missing_files and not self.reference_mismatches


def add_reference(tx: Transaction, document_id: int) -> Document:
    """Count one more referencing record for a document inside tx."""
    row = tx.require(Document, document_id, document_not_found(document_id))
    return tx.update(row, reference_count=row.reference_count + 1)


class ConsistencyCoordinator:
    """Sequences document area and metadata store operations."""

    def __init__(self, db: Database, documents: DocumentStore):
        """Initialize coordinator.

        Args:
            db: Database instance
            documents: Document store of the same data root
        """
        self.db = db
        self.documents = documents

    def create(
        self,
        payload: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        attach: Optional[Attach] = None,
        description: Optional[str] = None,
        from_person_id: Optional[int] = None,
        to_person_id: Optional[int] = None,
        processed_by: Optional[int] = None,
        received: Optional[date] = None,
    ) -> Any:
        """Store a document and its metadata as one logical operation.

        Args:
            payload: File content
            filename: Original filename
            mime_type: MIME type of the payload
            attach: Optional callback inserting the owning entity's rows; it
                runs in the same transaction as the document row and its
                return value is returned
            description: Optional free text
            from_person_id: Optional sender
            to_person_id: Optional recipient
            processed_by: Optional user who processed the document
            received: Optional date the document was received

        Returns:
            The domain Document, or the result of attach

        Raises:
            StorageIoError: If the file cannot be written (nothing else happened)
            DomainError: If the metadata transaction fails; the file is removed
        """
        handle = self.documents.put(payload, filename, mime_type)

        def work(tx: Transaction) -> Any:
            for person_id in (from_person_id, to_person_id):
                if person_id is not None:
                    tx.require(Person, person_id, person_not_found(person_id))
            if processed_by is not None:
                tx.require(User, processed_by, user_not_found(processed_by))

            row = tx.insert(
                Document,
                storage_key=handle.storage_key,
                filename=handle.filename,
                mime_type=handle.mime_type,
                size=handle.size,
                checksum=handle.checksum,
                description=description,
                from_person_id=from_person_id,
                to_person_id=to_person_id,
                processed_by=processed_by,
                received=received,
                reference_count=0,
            )
            if attach is None:
                return document_to_domain(row)
            return attach(tx, row)

        try:
            result = self.db.run_in_transaction(work)
        except BaseException:
            self._compensate(handle)
            raise

        logger.info("Created document %s as '%s'", handle.storage_key, handle.filename)
        return result

    def _compensate(self, handle: DocumentHandle) -> None:
        try:
            self.documents.remove(handle)
        except StorageIoError as exc:
            logger.error(
                "Could not remove file %s after failed create, left for sweep: %s",
                handle.storage_key,
                exc,
            )
        else:
            logger.info("Removed file %s after failed create", handle.storage_key)

    def delete(self, document_id: int) -> None:
        """Delete a document that no record references any more.

        Raises:
            NotFoundError: If the document does not exist
            ReferentialConflict: If entries still reference the document
            InternalConsistencyError: If the reference counter disagrees with
                the referencing entries
        """

        def work(tx: Transaction) -> str:
            row = tx.require(Document, document_id, document_not_found(document_id))
            referencing = tx.count(Entry, Entry.document_id == document_id)
            if referencing != row.reference_count:
                logger.critical(
                    "Document %d counts %d references but %d entries reference it",
                    document_id,
                    row.reference_count,
                    referencing,
                )
                raise InternalConsistencyError(
                    f"Reference count of document {document_id} is {row.reference_count}, "
                    f"but {referencing} entries reference it"
                )
            if referencing > 0:
                raise ReferentialConflict(
                    delete_blocked("document", document_id, {"entry": referencing})
                )
            storage_key = row.storage_key
            tx.delete(row)
            return storage_key

        storage_key = self.db.run_in_transaction(work)

        try:
            self.documents.remove(storage_key)
        except StorageIoError as exc:
            logger.warning(
                "Document %d deleted but file %s could not be removed, left for sweep: %s",
                document_id,
                storage_key,
                exc,
            )

    def get(self, document_id: int) -> entities.Document:
        """Get document metadata.

        Raises:
            NotFoundError: If the document does not exist
        """
        return self.db.run_in_transaction(
            lambda tx: document_to_domain(
                tx.require(Document, document_id, document_not_found(document_id))
            ),
            readonly=True,
        )

    def read(self, document_id: int) -> tuple[entities.Document, bytes]:
        """Read document metadata and payload.

        Raises:
            NotFoundError: If the document does not exist
            InternalConsistencyError: If the file is missing or corrupted
        """
        document = self.get(document_id)
        try:
            payload = self.documents.get(document.storage_key)
        except DocumentFileMissing as exc:
            # A concurrent delete removes the row before the file
            if not self._has_metadata(document.storage_key):
                raise NotFoundError(document_not_found(document_id)) from exc
            logger.critical(
                "Document %d has metadata but its file %s is missing",
                document_id,
                document.storage_key,
            )
            raise InternalConsistencyError(
                f"File of document {document_id} is missing"
            ) from exc

        if hashlib.sha256(payload).hexdigest() != document.checksum:
            logger.critical("Document %d failed its checksum", document_id)
            raise InternalConsistencyError(f"File of document {document_id} is corrupted")

        return document, payload

    def _has_metadata(self, storage_key: str) -> bool:
        return self.db.run_in_transaction(
            lambda tx: tx.exists(Document, Document.storage_key == storage_key),
            readonly=True,
        )

    def _known_keys(self) -> set[str]:
        rows = self.db.run_in_transaction(
            lambda tx: tx.all(select(Document.storage_key)), readonly=True
        )
        return {storage_key for (storage_key,) in rows}

    def sweep(self, grace_seconds: float) -> list[str]:
        """Remove files that have no metadata row.

        Files younger than grace_seconds are kept, since they may belong to a
        create whose metadata transaction has not committed yet.

        Returns:
            Storage keys of the removed files
        """
        known = self._known_keys()
        removed = []
        for storage_key in self.documents.iter_keys():
            if storage_key in known:
                continue
            try:
                if self.documents.age(storage_key) < grace_seconds:
                    continue
            except DocumentFileMissing:
                continue
            if self._has_metadata(storage_key):
                continue
            self.documents.remove(storage_key)
            removed.append(storage_key)
            logger.warning("Swept orphaned document file %s", storage_key)

        purged = self.documents.purge_stale_temporaries(grace_seconds)
        if purged:
            logger.warning("Purged %d stale temporary files", purged)
        return removed

    def audit(self) -> AuditReport:
        """Compare the document area with the metadata store."""
        report = AuditReport()
        rows = self.db.run_in_transaction(self._load_reference_counts, readonly=True)
        known = set()
        for document_id, storage_key, counted, referencing in rows:
            known.add(storage_key)
            if not self.documents.exists(storage_key):
                logger.critical("Document %d has no file %s", document_id, storage_key)
                report.missing_files.append(document_id)
            if counted != referencing:
                logger.critical(
                    "Document %d counts %d references, %d found", document_id, counted, referencing
                )
                report.reference_mismatches.append(document_id)

        report.orphan_files = [key for key in self.documents.iter_keys() if key not in known]
        return report

    @staticmethod
    def _load_reference_counts(tx: Transaction) -> list:
        referencing = (
            select(func.count(Entry.id))
            .where(Entry.document_id == Document.id)
            .correlate(Document)
            .scalar_subquery()
        )
        return tx.all(
            select(Document.id, Document.storage_key, Document.reference_count, referencing)
        )
