from pydantic_settings import BaseSettings
from typing import Dict
import logging


class Settings(BaseSettings):
    """Harness configuration"""

    # MongoDB
    mongodb_hosts: str = "localhost:27017"
    replica_set_name: str = "rs0"
    server_selection_timeout_ms: int = 5000
    connect_timeout_ms: int = 5000

    # Primary resolution
    connect_backoff_initial_delay_ms: int = 1000
    connect_backoff_max_delay_ms: int = 120000
    connection_error_threshold: int = 3

    # Fixtures
    bypass_document_validation: bool = True

    # Filters (comma separated regular expressions)
    database_include_list: str = ""
    database_exclude_list: str = ""
    collection_include_list: str = ""
    collection_exclude_list: str = ""

    # Connector under test
    kafka_connect_url: str = "http://localhost:8083"
    connector_name: str = "mongodb-cdc-connector"
    connector_class: str = "io.debezium.connector.mongodb.MongoDbConnector"
    connector_properties: Dict[str, str] = {}

    # Logging
    debug: bool = False
    log_level: str = "INFO"

    def qualified_hosts(self) -> str:
        """Host list prefixed with the replica set name when it has none"""
        hosts = self.mongodb_hosts.strip()
        if "/" not in hosts and self.replica_set_name:
            return f"{self.replica_set_name}/{hosts}"
        return hosts

    class Config:
        env_prefix = "HARNESS_"
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()


def configure_logging(config: Settings = None):
    """Configure root logging for a test session"""
    config = config or settings
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
