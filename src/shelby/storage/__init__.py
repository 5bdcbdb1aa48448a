"""Document area and its coordination with the metadata store."""

from shelby.storage.documents import DocumentHandle, DocumentStore
from shelby.storage.coordinator import AuditReport, ConsistencyCoordinator

__all__ = ["DocumentHandle", "DocumentStore", "AuditReport", "ConsistencyCoordinator"]
