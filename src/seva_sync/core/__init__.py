"""Core reconciliation logic.

This subpackage turns live organization state into CSV rows and CSV
rows back into encrypted API calls.

Key modules:
    - inventory: Paginated repository listing and lookups
    - visibility: Visibility resolution and provider payload shapes
    - cipher: Sealed-box encryption against public keys
    - csv_schema: CSV rows to and from records
    - driver: Export/create over the level x provider matrix
    - environments: Deployment environment report
"""

from seva_sync.core.inventory import InventoryError, RepositoryInventory
from seva_sync.core.cipher import EncryptionError, PublicKeyCipher, encrypt
from seva_sync.core.visibility import (
    PayloadError,
    ResolvedScope,
    VisibilityResolver,
    payload_builder,
)
from seva_sync.core.csv_schema import (
    ENVIRONMENT_HEADER,
    SECRET_HEADER,
    VARIABLE_HEADER,
    CsvSchemaError,
    ParsedRows,
    ReportWriter,
    open_report,
    read_secrets,
    read_variables,
)
from seva_sync.core.driver import ReconciliationDriver
from seva_sync.core.environments import export_environments

__all__ = [
    # inventory
    "InventoryError",
    "RepositoryInventory",
    # cipher
    "EncryptionError",
    "PublicKeyCipher",
    "encrypt",
    # visibility
    "PayloadError",
    "ResolvedScope",
    "VisibilityResolver",
    "payload_builder",
    # csv_schema
    "ENVIRONMENT_HEADER",
    "SECRET_HEADER",
    "VARIABLE_HEADER",
    "CsvSchemaError",
    "ParsedRows",
    "ReportWriter",
    "open_report",
    "read_secrets",
    "read_variables",
    # driver
    "ReconciliationDriver",
    # environments
    "export_environments",
]
