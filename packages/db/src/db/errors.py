# This project was developed with assistance from AI tools.
"""Exceptions raised at the document store boundary."""


class StoreError(Exception):
    """Base class for every failure reported by a document store backend."""


class StoreUnavailableError(StoreError):
    """The backend could not be reached."""


class DocumentNotFoundError(StoreError):
    """An update targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"No document to update: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class DocumentExistsError(StoreError):
    """A create targeted an id that is already taken."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document already exists: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class TransactionConflictError(StoreError):
    """A document read inside a transaction changed before commit."""


class TransactionUsageError(StoreError):
    """A transaction was used in a way the store does not support."""
