"""Temporal client factory.

Creates connections to Temporal (Cloud or a local dev server) using
credentials from settings.
"""

from pathlib import Path
from typing import Optional

from temporalio.client import Client
from temporalio.service import TLSConfig

from core.config import ConfigurationError, TemporalSettings, load_settings


def _tls_config(settings: TemporalSettings):
    """TLS for Temporal Cloud: mTLS when a client certificate is configured."""
    if settings.cert_path:
        # PEM file holding both the client certificate and its private key
        pem = Path(settings.cert_path).read_bytes()
        return TLSConfig(client_cert=pem, client_private_key=pem)
    if settings.api_key:
        return True
    return False


async def get_temporal_client(settings: Optional[TemporalSettings] = None) -> Client:
    """Create and return a connected Temporal client.

    Reads TEMPORAL_ENDPOINT, TEMPORAL_NAMESPACE, TEMPORAL_API_KEY and
    TEMPORAL_CERT_PATH (via core.config) unless settings are passed in.

    Raises:
        ConfigurationError: If TEMPORAL_ENDPOINT is not set
    """
    if settings is None:
        settings = load_settings().temporal

    if not settings.endpoint:
        raise ConfigurationError(
            "TEMPORAL_ENDPOINT environment variable not set. "
            "Set to your Temporal endpoint (e.g., 'localhost:7233' or 'ns.acct.tmprl.cloud:7233')"
        )

    return await Client.connect(
        target_host=settings.endpoint,
        namespace=settings.namespace,
        tls=_tls_config(settings),
        api_key=settings.api_key,
    )
