import httpx
from typing import Dict, Optional
import logging
import time

from mongo_cdc_harness.config import Settings, settings as default_settings
from mongo_cdc_harness.errors import ConnectorError
from mongo_cdc_harness.models.connector import ConnectorStatus
from mongo_cdc_harness.models.filters import Filters

logger = logging.getLogger(__name__)


class ConnectorRunner:
    """Starts and stops the connector under test through Kafka Connect"""

    def __init__(self, config: Settings = None, http_client: httpx.Client = None):
        """
        Initialize connector runner

        Args:
            config: Harness settings (defaults to the global settings)
            http_client: Client for the Kafka Connect REST API; one is created
                and owned by the runner when omitted
        """
        self.config = config or default_settings
        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(base_url=self.config.kafka_connect_url, timeout=30.0)
        self.running_connector: Optional[str] = None

    def connector_config(self, filters: Filters = None, **overrides: str) -> Dict[str, str]:
        """Connector configuration built from the settings, filters and overrides"""
        config = {
            "connector.class": self.config.connector_class,
            "tasks.max": "1",
            "mongodb.hosts": self.config.qualified_hosts(),
        }
        if filters is not None:
            config.update(filters.to_connector_properties())
        config.update(self.config.connector_properties)
        config.update({key: str(value) for key, value in overrides.items()})
        return config

    def start(self, config: Dict[str, str], name: str = None):
        """
        Create or reconfigure the connector

        Args:
            config: Connector configuration properties
            name: Connector name (defaults to the configured name)
        """
        name = name or self.config.connector_name
        logger.info(f"Starting connector '{name}'")

        try:
            response = self.client.put(f"/connectors/{name}/config", json=config)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to start connector '{name}': {e}")
            raise ConnectorError(f"Failed to start connector '{name}': {e}") from e

        self.running_connector = name
        logger.info(f"Submitted connector '{name}'")

    def stop(self):
        """Delete the running connector, if any"""
        name = self.running_connector
        if name is None:
            return

        logger.info(f"Stopping connector '{name}'")
        try:
            response = self.client.delete(f"/connectors/{name}")
            if response.status_code == 404:
                logger.info(f"Connector '{name}' was already removed")
                return
            response.raise_for_status()
            logger.info(f"Stopped connector '{name}'")
        except httpx.HTTPError as e:
            logger.error(f"Failed to stop connector '{name}': {e}")
            raise ConnectorError(f"Failed to stop connector '{name}': {e}") from e
        finally:
            self.running_connector = None

    def status(self, name: str = None) -> ConnectorStatus:
        """Current status of the connector"""
        name = name or self.running_connector or self.config.connector_name
        try:
            response = self.client.get(f"/connectors/{name}/status")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ConnectorError(f"Failed to get status of connector '{name}': {e}") from e
        return ConnectorStatus.from_response(response.json())

    def wait_until_running(self, timeout: float = 60, interval: float = 2) -> ConnectorStatus:
        """Poll the status until the connector and its tasks are RUNNING"""
        start = time.time()
        last_error = None
        while time.time() - start < timeout:
            try:
                status = self.status()
                if status.running:
                    return status
                logger.debug(f"Connector state: {status.state}, waiting...")
            except ConnectorError as e:
                last_error = e
                logger.debug(f"Waiting for connector: {e}")
            time.sleep(interval)
        raise ConnectorError(f"Connector did not reach RUNNING state after {timeout}s: {last_error}")

    def is_running(self) -> bool:
        return self.running_connector is not None

    def close(self):
        if self._owns_client:
            self.client.close()
