from pymongo import MongoClient
from typing import Any, Callable, Dict, List, Mapping, Optional
import logging

from mongo_cdc_harness.errors import DocumentValidationError
from mongo_cdc_harness.services import diagnostics
from mongo_cdc_harness.services.connection_context import MongoPrimary

logger = logging.getLogger(__name__)


def validate_document(document: Optional[Mapping[str, Any]], position: int):
    """
    Check that a fixture document can be stored

    Raises:
        DocumentValidationError: If the document is None or has no fields
    """
    if document is None:
        raise DocumentValidationError(f"Document at position {position} is None")
    if len(document) == 0:
        raise DocumentValidationError(f"Document at position {position} has no fields")


class FixtureExecutor:
    """Seeds and mutates collections on the primary before the connector sees them"""

    def __init__(self, primary: Callable[[], MongoPrimary], bypass_document_validation: bool = True):
        """
        Initialize fixture executor

        Args:
            primary: Supplies a fresh primary handle for each operation
            bypass_document_validation: Default for skipping the collection's
                validation rules on insert
        """
        self.primary = primary
        self.bypass_document_validation = bypass_document_validation

    def _store(
        self,
        client: MongoClient,
        db_name: str,
        collection_name: str,
        documents: tuple,
        drop: bool,
        bypass_document_validation: bool,
        progress: Dict[str, int]
    ):
        """
        Insert `documents` from the first one not yet written

        `progress` outlives a single attempt. A retry after a dropped
        collection starts over; a retry of a plain insert resumes after the
        last document the server acknowledged.
        """
        diagnostics.debug(f"Storing in '{db_name}.{collection_name}' document")
        collection = client[db_name][collection_name]
        if drop:
            collection.drop()
            progress["written"] = 0
            logger.debug(f"Dropped collection {db_name}.{collection_name}")
        elif progress["written"]:
            logger.debug(f"Resuming insert into {db_name}.{collection_name} at position {progress['written']}")

        for position in range(progress["written"], len(documents)):
            document = documents[position]
            validate_document(document, position)
            collection.insert_one(document, bypass_document_validation=bypass_document_validation)
            progress["written"] = position + 1

    def drop_and_insert(
        self,
        db_name: str,
        collection_name: str,
        *documents: Mapping[str, Any],
        bypass_document_validation: Optional[bool] = None
    ):
        """
        Drop a collection and insert documents into the now empty collection

        Nothing is dropped when no documents are given.

        Args:
            db_name: Database name
            collection_name: Collection name
            documents: Documents to insert, in order; may be empty
            bypass_document_validation: Override the executor default
        """
        if not documents:
            return

        bypass = self.bypass_document_validation if bypass_document_validation is None else bypass_document_validation
        progress = {"written": 0}
        self.primary().execute("store documents", lambda client: self._store(
            client, db_name, collection_name, documents, True, bypass, progress
        ))

    def insert(
        self,
        db_name: str,
        collection_name: str,
        *documents: Mapping[str, Any],
        bypass_document_validation: Optional[bool] = None
    ):
        """
        Insert documents into a collection, keeping its current content

        Args:
            db_name: Database name
            collection_name: Collection name
            documents: Documents to insert, in order; may be empty
            bypass_document_validation: Override the executor default
        """
        if not documents:
            return

        bypass = self.bypass_document_validation if bypass_document_validation is None else bypass_document_validation
        progress = {"written": 0}
        self.primary().execute("store documents", lambda client: self._store(
            client, db_name, collection_name, documents, False, bypass, progress
        ))

    def update(
        self,
        db_name: str,
        collection_name: str,
        filter: Mapping[str, Any],
        document: Mapping[str, Any]
    ):
        """
        Update the first document matching a filter

        Args:
            db_name: Database name
            collection_name: Collection name
            filter: Query selecting the document
            document: Update expression, e.g. `{"$set": {"name": "x"}}`
        """
        def _update(client: MongoClient):
            diagnostics.debug(f"Updating document with filter '{filter}' in '{db_name}.{collection_name}'")
            result = client[db_name][collection_name].update_one(filter, document)
            logger.debug(
                f"Update on {db_name}.{collection_name} matched {result.matched_count}, "
                f"modified {result.modified_count}"
            )

        self.primary().execute("update", _update)

    def read(
        self,
        db_name: str,
        collection_name: str,
        filter: Optional[Mapping[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Documents of a collection in natural order"""
        return self.primary().apply(
            "read documents",
            lambda client: list(client[db_name][collection_name].find(filter or {}))
        )
