"""
Base class for MongoDB connector integration tests

Subclasses get fresh diagnostics, connector and connection state around each
test, plus helpers that put collections into a known state on the current
primary before the connector under test observes them:

    class TestOplogCapture(AbstractMongoConnectorTest):

        def test_insert_is_captured(self):
            self.create_task_context()
            self.drop_and_insert_documents("dbA", "orders", {"_id": 1, "qty": 5})
            self.start_connector()
            ...
"""
from typing import Any, Dict, List, Mapping, Optional
import logging

from mongo_cdc_harness.config import Settings
from mongo_cdc_harness.errors import HarnessError, TeardownError
from mongo_cdc_harness.models.replica_set import ReplicaSet
from mongo_cdc_harness.services import diagnostics
from mongo_cdc_harness.services.connection_context import MongoPrimary, TaskContext
from mongo_cdc_harness.services.connector import ConnectorRunner
from mongo_cdc_harness.services.error_policy import ConnectionErrorPolicy
from mongo_cdc_harness.services.fixtures import FixtureExecutor

logger = logging.getLogger(__name__)


class AbstractMongoConnectorTest:
    """pytest base class; not collected itself because its name has no Test prefix"""

    config: Optional[Settings] = None
    context: Optional[TaskContext] = None
    connector: Optional[ConnectorRunner] = None

    def setup_method(self):
        diagnostics.disable_debug()
        diagnostics.disable_print()
        self.stop_connector()
        self.initialize_connector_test_framework()

    def teardown_method(self):
        errors = []
        try:
            self.stop_connector()
        except Exception as e:
            errors.append(e)
        finally:
            if self.context is not None:
                try:
                    self.context.connection_context.shutdown()
                except Exception as e:
                    errors.append(e)

        if len(errors) == 1:
            raise errors[0]
        if errors:
            logger.error(f"Stopping the connector and shutting down the connection context both failed: {errors}")
            raise TeardownError(errors) from errors[0]

    @classmethod
    def teardown_class(cls):
        if cls.connector is not None:
            cls.connector.close()
            cls.connector = None

    def initialize_connector_test_framework(self):
        """Reset per-test bookkeeping"""
        self.config = self.config or Settings()
        self.context = None
        # One runner per test class; pytest creates a fresh instance for every test
        if type(self).connector is None:
            type(self).connector = ConnectorRunner(self.config)
        diagnostics.debug(f"Initialized connector test framework for {self.config.qualified_hosts()}")

    def create_task_context(self, config: Settings = None) -> TaskContext:
        """Create the connection context shared by all fixture calls of this test"""
        if config is not None:
            self.config = config
        self.context = TaskContext(self.config)
        return self.context

    def start_connector(self, **overrides: str):
        """Start the connector under test against the configured replica set"""
        filters = self.context.filters if self.context is not None else None
        self.connector.start(self.connector.connector_config(filters, **overrides))

    def stop_connector(self):
        if self.connector is not None:
            self.connector.stop()

    def primary(self) -> MongoPrimary:
        """Handle for the current primary; use it for one operation only"""
        if self.context is None:
            raise HarnessError("No task context; call create_task_context() before primary()")
        connection_context = self.context.connection_context
        replica_set = ReplicaSet.parse(connection_context.hosts())
        return connection_context.primary_for(
            replica_set,
            self.context.filters,
            self.connection_error_handler(self.config.connection_error_threshold)
        )

    def connection_error_handler(self, threshold: int) -> ConnectionErrorPolicy:
        return ConnectionErrorPolicy(threshold)

    def _fixtures(self) -> FixtureExecutor:
        return FixtureExecutor(self.primary, self.config.bypass_document_validation)

    def drop_and_insert_documents(
        self,
        db_name: str,
        collection_name: str,
        *documents: Mapping[str, Any],
        bypass_document_validation: Optional[bool] = None
    ):
        """
        Drop the collection and insert all documents into the empty collection

        The collection is only dropped when at least one document is given.
        """
        self._fixtures().drop_and_insert(
            db_name, collection_name, *documents, bypass_document_validation=bypass_document_validation
        )

    def insert_documents(
        self,
        db_name: str,
        collection_name: str,
        *documents: Mapping[str, Any],
        bypass_document_validation: Optional[bool] = None
    ):
        """Insert all documents into the collection"""
        self._fixtures().insert(
            db_name, collection_name, *documents, bypass_document_validation=bypass_document_validation
        )

    def update_document(
        self,
        db_name: str,
        collection_name: str,
        filter: Mapping[str, Any],
        document: Mapping[str, Any]
    ):
        """Update the first document matching `filter` with the update expression `document`"""
        self._fixtures().update(db_name, collection_name, filter, document)

    def read_documents(
        self,
        db_name: str,
        collection_name: str,
        filter: Mapping[str, Any] = None
    ) -> List[Dict[str, Any]]:
        return self._fixtures().read(db_name, collection_name, filter)
