"""Business Central Connector Package.

Read-only adapters for the two API surfaces of one Business Central tenant:
the standard `api/v2.0` API and the custom tmc integration API.
"""

from connectors.business_central.bc_auth import BCCredentialProvider, BCAuthConfig, BCToken
from connectors.business_central.bc_client import (
    BCApiConfig,
    BCApiError,
    CredentialError,
    FetchError,
    ODataClient,
    TransportError,
    UnexpectedShapeError,
)
from connectors.business_central.v2_api import V2ApiAdapter, V2_SOURCE
from connectors.business_central.tmc_api import TmcApiAdapter, TMC_SOURCE

__all__ = [
    # Credentials
    "BCCredentialProvider",
    "BCAuthConfig",
    "BCToken",
    # Client
    "BCApiConfig",
    "ODataClient",
    # Errors
    "BCApiError",
    "CredentialError",
    "FetchError",
    "TransportError",
    "UnexpectedShapeError",
    # Adapters
    "V2ApiAdapter",
    "TmcApiAdapter",
    "V2_SOURCE",
    "TMC_SOURCE",
]
