from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError
from typing import Any, Callable, Dict, Iterator, List, Optional
import logging
import time

from mongo_cdc_harness.config import Settings, settings as default_settings
from mongo_cdc_harness.models.filters import Filters, describe
from mongo_cdc_harness.models.replica_set import ReplicaSet, ServerAddress

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[str, BaseException], None]


class ConnectionContext:
    """Owns the MongoDB clients used by one test instance"""

    def __init__(
        self,
        config: Settings = None,
        client_factory: Callable[..., MongoClient] = MongoClient,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize connection context

        Args:
            config: Harness settings (defaults to the global settings)
            client_factory: Callable creating a client from a URI and options
            sleep: Callable used to pause between retries
        """
        self.config = config or default_settings
        self.client_factory = client_factory
        self.sleep = sleep
        self.mongo_clients: Dict[str, MongoClient] = {}
        self._shutdown = False

    def hosts(self) -> str:
        """Configured host list, prefixed with the replica set name when known"""
        return self.config.qualified_hosts()

    def _get_mongo_client(self, connection_string: str) -> MongoClient:
        """Get or create a client for a connection string"""
        if self._shutdown:
            raise RuntimeError("Connection context has been shut down")

        if connection_string not in self.mongo_clients:
            client = self.client_factory(
                connection_string,
                serverSelectionTimeoutMS=self.config.server_selection_timeout_ms,
                connectTimeoutMS=self.config.connect_timeout_ms
            )
            self.mongo_clients[connection_string] = client
            logger.info(f"Created MongoDB client for {connection_string}")

        return self.mongo_clients[connection_string]

    def client_for(self, replica_set: ReplicaSet) -> MongoClient:
        """Replica set aware client for all seeds of `replica_set`"""
        return self._get_mongo_client(replica_set.connection_string())

    def client_for_address(self, address: ServerAddress) -> MongoClient:
        """Client connected directly to a single node"""
        return self._get_mongo_client(f"mongodb://{address}/?directConnection=true")

    def primary_address(self, replica_set: ReplicaSet) -> ServerAddress:
        """
        Ask the replica set which member is currently primary

        Raises:
            ServerSelectionTimeoutError: If no member reports a primary
            ConnectionFailure: When the replica set cannot be reached
        """
        hello = self.client_for(replica_set).admin.command("hello")
        primary = hello.get("primary")
        if not primary:
            if hello.get("isWritablePrimary") and hello.get("me"):
                primary = hello["me"]
            else:
                raise ServerSelectionTimeoutError(f"No primary found for replica set {replica_set}")
        return ServerAddress.parse(primary)

    def primary_for(
        self,
        replica_set: ReplicaSet,
        filters: Optional[Filters],
        error_handler: ErrorHandler
    ) -> "MongoPrimary":
        """Handle for running operations against the current primary of `replica_set`"""
        logger.debug(f"Creating primary handle for {replica_set} ({describe(filters)})")
        return MongoPrimary(self, replica_set, filters, error_handler)

    def backoff_delays(self) -> Iterator[float]:
        """Exponential retry delays in seconds, capped at the configured maximum"""
        delay = self.config.connect_backoff_initial_delay_ms
        maximum = self.config.connect_backoff_max_delay_ms
        while True:
            yield min(delay, maximum) / 1000.0
            delay = min(delay * 2, maximum)

    def shutdown(self):
        """Close every client; later calls do nothing"""
        if self._shutdown:
            return
        self._shutdown = True

        for connection_string, client in list(self.mongo_clients.items()):
            try:
                client.close()
                logger.info(f"Closed MongoDB client for {connection_string}")
            except Exception as e:
                logger.error(f"Failed to close MongoDB client for {connection_string}: {e}")
        self.mongo_clients.clear()

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown


class MongoPrimary:
    """
    Runs operations against whichever node is primary at the time

    The primary is looked up again on every attempt, so a handle keeps
    working across a failover. Connection errors are reported to the error
    handler and the operation is retried after a backoff delay; the error
    handler ends the loop by raising. Any other exception propagates at once.
    """

    def __init__(
        self,
        context: ConnectionContext,
        replica_set: ReplicaSet,
        filters: Optional[Filters],
        error_handler: ErrorHandler
    ):
        self.context = context
        self.replica_set = replica_set
        self.filters = filters if filters is not None else Filters()
        self.error_handler = error_handler

    def address(self) -> ServerAddress:
        """Address of the current primary"""
        host, port = self.apply("get primary address", lambda client: client.address)
        return ServerAddress(host=host, port=port)

    def apply(self, description: str, operation: Callable[[MongoClient], Any]) -> Any:
        """Run `operation` with a client connected to the primary and return its result"""
        delays = self.context.backoff_delays()
        while True:
            try:
                address = self.context.primary_address(self.replica_set)
                client = self.context.client_for_address(address)
                return operation(client)
            except ConnectionFailure as e:
                self.error_handler(description, e)
                delay = next(delays)
                logger.debug(f"Retrying '{description}' in {delay:.3f}s")
                self.context.sleep(delay)

    def execute(self, description: str, operation: Callable[[MongoClient], None]):
        """Run `operation` with a client connected to the primary"""
        self.apply(description, operation)

    def database_names(self) -> List[str]:
        """Databases on the primary that pass the filters"""
        names = self.apply("get database names", lambda client: client.list_database_names())
        return [name for name in names if self.filters.database_filter(name)]

    def collections(self) -> List[str]:
        """Fully qualified `db.collection` names on the primary that pass the filters"""
        def _list(client: MongoClient) -> List[str]:
            result = []
            for database_name in client.list_database_names():
                if not self.filters.database_filter(database_name):
                    continue
                for collection_name in client[database_name].list_collection_names():
                    if self.filters.collection_filter(database_name, collection_name):
                        result.append(f"{database_name}.{collection_name}")
            return result

        return self.apply("get collections", _list)


class TaskContext:
    """Settings, filters and the shared connection context for one test"""

    def __init__(self, config: Settings = None, connection_context: ConnectionContext = None):
        self.config = config or default_settings
        self.filters = Filters.from_settings(self.config)
        self.connection_context = connection_context or ConnectionContext(self.config)
