from __future__ import annotations

from ..extensions import db


class StoredDocument(db.Model):
    """
    One schemaless document in a named collection.

    The relational backing for the document store port: `collection` plus
    `doc_id` identify the document, `data` holds its fields as JSON.

    `version` is bumped on every write and is the compare-and-swap token
    for optimistic concurrency (see services/document_store.py).
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),
        db.Index("ix_documents_collection", "collection"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    collection = db.Column(db.String(64), nullable=False)
    doc_id = db.Column(db.String(64), nullable=False)

    data = db.Column(db.JSON, nullable=False, default=dict)
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
