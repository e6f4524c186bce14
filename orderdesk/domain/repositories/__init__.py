from .document_store import DocumentStore, Subscriber, TransactionFn, is_related, join_path, split_path

__all__ = [
    "DocumentStore",
    "Subscriber",
    "TransactionFn",
    "is_related",
    "join_path",
    "split_path",
]
