"""Document domain service."""

import mimetypes
from datetime import date
from typing import Any, Optional

from shelby.database.mappers import document_to_domain
from shelby.database.models import Document
from shelby.domain.entities import Document as DocumentEntity
from shelby.domain.listing import list_rows
from shelby.storage.coordinator import ConsistencyCoordinator
from shelby.utils.pagination import Page, Pagination


class DocumentService:
    """Service for uploading, fetching and deleting documents."""

    def __init__(self, coordinator: ConsistencyCoordinator):
        """Initialize document service.

        Args:
            coordinator: Coordinator over the document area and metadata store
        """
        self.coordinator = coordinator
        self.db = coordinator.db

    def upload(
        self,
        payload: bytes,
        filename: str,
        mime_type: Optional[str] = None,
        description: Optional[str] = None,
        from_person_id: Optional[int] = None,
        to_person_id: Optional[int] = None,
        actor: Optional[int] = None,
        received: Optional[date] = None,
    ) -> int:
        """Store a document.

        Args:
            payload: File content
            filename: Original filename
            mime_type: MIME type, guessed from the filename when omitted
            description: Optional free text
            from_person_id: Optional sender
            to_person_id: Optional recipient
            actor: ID of the authenticated user processing the document
            received: Date the document was received, if known

        Returns:
            Document ID, usable as a reference from ledger entries

        Raises:
            ValidationError: If the payload or filename is invalid
            NotFoundError: If a referenced person or user does not exist
            StorageIoError: If the file cannot be written
        """
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(filename)
        document = self.coordinator.create(
            payload,
            filename,
            mime_type,
            description=description,
            from_person_id=from_person_id,
            to_person_id=to_person_id,
            processed_by=actor,
            received=received,
        )
        return document.id

    def get_document(self, document_id: int) -> DocumentEntity:
        """Get document metadata.

        Raises:
            NotFoundError: If the document does not exist
        """
        return self.coordinator.get(document_id)

    def read(self, document_id: int) -> tuple[DocumentEntity, bytes]:
        """Get document metadata together with the verified payload."""
        return self.coordinator.read(document_id)

    def fetch(self, document_id: int) -> bytes:
        """Get the payload of a document.

        Raises:
            NotFoundError: If the document does not exist
            InternalConsistencyError: If the file is missing or corrupted
        """
        _, payload = self.coordinator.read(document_id)
        return payload

    def delete_document(self, document_id: int) -> None:
        """Delete a document no entry references."""
        self.coordinator.delete(document_id)

    def list_documents(
        self,
        filters: Optional[dict[str, Any]] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[DocumentEntity]:
        """List one page of document metadata."""
        return list_rows(self.db, Document, document_to_domain, filters, pagination)
