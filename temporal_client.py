"""Temporal client factory.

Creates connections to Temporal Cloud (API key + TLS) or to a local dev
server when no API key is configured.
"""

from pathlib import Path
from typing import Optional

from temporalio.client import Client, TLSConfig

from core.config import Settings


async def get_temporal_client(settings: Optional[Settings] = None) -> Client:
    """Create and return a Temporal client.

    Reads configuration from ``Settings``:
    - TEMPORAL_ENDPOINT: Temporal endpoint (e.g., "temporal.example.com:7233")
    - TEMPORAL_NAMESPACE: Namespace (e.g., "default")
    - TEMPORAL_API_KEY: API key for Temporal Cloud (omit for a local dev server)
    - TEMPORAL_CERT_PATH: Path to client certificate (optional, for mTLS)

    Returns:
        Connected Temporal client

    Raises:
        ValueError: If TEMPORAL_ENDPOINT is missing
    """
    settings = settings or Settings.from_env()

    if not settings.temporal_endpoint:
        raise ValueError(
            "TEMPORAL_ENDPOINT environment variable not set. "
            "Set to your Temporal endpoint (e.g., 'localhost:7233')"
        )

    if not settings.temporal_api_key:
        # Local dev server: plain connection
        return await Client.connect(
            settings.temporal_endpoint,
            namespace=settings.temporal_namespace,
        )

    tls_config = True
    if settings.temporal_cert_path:
        # PEM file holding both the client certificate and its key
        pem = Path(settings.temporal_cert_path).read_bytes()
        tls_config = TLSConfig(client_cert=pem, client_private_key=pem)

    return await Client.connect(
        target_host=settings.temporal_endpoint,
        namespace=settings.temporal_namespace,
        tls=tls_config,
        api_key=settings.temporal_api_key,
    )
