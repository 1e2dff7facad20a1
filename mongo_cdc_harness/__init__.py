"""
Test support for change-data-capture connectors reading from MongoDB replica sets
"""
from mongo_cdc_harness.errors import (
    ConnectorError,
    DocumentValidationError,
    HarnessError,
    PrimaryConnectionError,
    TeardownError,
)
from mongo_cdc_harness.harness import AbstractMongoConnectorTest

__version__ = "1.0.0"
