"""Business Central OData Client.

Low-level read client shared by the standard (v2.0) and custom (tmc) API
adapters. Handles authentication headers, server-driven pagination via
@odata.nextLink and error classification.

There is no retry logic here: a failed page aborts the fetch and surfaces
as a FetchError to the caller.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional
import asyncio
import json
import logging

import aiohttp

from connectors.business_central.bc_auth import BCCredentialProvider

logger = logging.getLogger(__name__)


class BCApiError(Exception):
    """Base exception for BC API errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class TransportError(BCApiError):
    """No response, or a non-success HTTP status."""
    pass


class UnexpectedShapeError(BCApiError):
    """Response body is not JSON or lacks the OData `value` array."""
    pass


class CredentialError(BCApiError):
    """The client-credentials token exchange failed."""
    pass


class FetchError(BCApiError):
    """A collection fetch failed; wraps the underlying cause.

    Attributes:
        source: API surface tag ("v2.0" or "tmc")
        entity_path: Collection path relative to the company URL
        http_status: HTTP status when the upstream answered, else None
        cause: The wrapped TransportError / UnexpectedShapeError / CredentialError
    """
    def __init__(self, source: str, entity_path: str, cause: Exception):
        http_status = getattr(cause, "status_code", None)
        message = f"Failed to fetch {entity_path} from {source}"
        if http_status:
            message += f" (HTTP {http_status})"
        message += f": {cause}"
        super().__init__(message, http_status, getattr(cause, "response_body", ""))
        self.source = source
        self.entity_path = entity_path
        self.http_status = http_status
        self.cause = cause


@dataclass
class BCApiConfig:
    """Configuration for one BC API surface.

    `api_path` is "v2.0" for the standard API or
    "<publisher>/<group>/<version>" for a custom API page.
    """
    tenant_id: str
    company_id: str
    environment: str = "production"
    base_url: str = "https://api.businesscentral.dynamics.com"
    api_path: str = "v2.0"
    page_size: Optional[int] = 1000
    timeout_seconds: int = 60

    def get_base_url(self) -> str:
        return f"{self.base_url}/v2.0/{self.tenant_id}/{self.environment}/api/{self.api_path}"

    def get_company_url(self) -> str:
        """Get the URL that collection paths are resolved against."""
        if not self.company_id:
            raise ValueError("company_id must be set")
        return f"{self.get_base_url()}/companies({self.company_id})"


def format_odata_datetime(timestamp: datetime) -> str:
    """Render a timestamp the way BC expects in $filter literals."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    timestamp = timestamp.astimezone(timezone.utc)
    return timestamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{timestamp.microsecond // 1000:03d}Z"


class ODataClient:
    """Authenticated, paginating reader for one BC API surface.

    Usage:
        client = ODataClient(credentials, BCApiConfig(tenant_id=..., company_id=...))
        async with client:
            async for record in client.iter_records("customers", select=["id", "number"]):
                ...
    """

    source: str = "bc"

    def __init__(
        self,
        credentials: BCCredentialProvider,
        api_config: BCApiConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Initialize client.

        Args:
            credentials: Shared credential provider
            api_config: Surface configuration
            session: Optional externally owned aiohttp session
        """
        self.credentials = credentials
        self.api_config = api_config
        self._session = session
        self._owns_session = False

    async def connect(self) -> None:
        """Open an HTTP session if none was injected."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True

    async def disconnect(self) -> None:
        """Close the HTTP session if this client opened it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
            self._owns_session = False

    async def __aenter__(self) -> "ODataClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def modified_since_filter(self, timestamp: Optional[datetime]) -> Optional[str]:
        """Translate a "modified since" checkpoint into a $filter predicate."""
        if timestamp is None:
            return None
        return f"lastModifiedDateTime gt {format_odata_datetime(timestamp)}"

    def _build_url(self, entity_path: str) -> str:
        return f"{self.api_config.get_company_url()}/{entity_path}"

    async def _get_headers(self) -> Dict[str, str]:
        token = await self.credentials.get_valid_credential()
        headers = {
            "Authorization": token.authorization_header,
            "Accept": "application/json",
        }
        if self.api_config.page_size:
            headers["Prefer"] = f"odata.maxpagesize={self.api_config.page_size}"
        return headers

    async def _get_page(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GET one page and return the parsed OData envelope.

        Raises:
            TransportError: No response or HTTP status >= 400
            UnexpectedShapeError: Body is not an OData collection
        """
        if self._session is None:
            await self.connect()

        headers = await self._get_headers()
        timeout = aiohttp.ClientTimeout(total=self.api_config.timeout_seconds)

        try:
            async with self._session.request(
                "GET",
                url,
                headers=headers,
                params=params,
                timeout=timeout,
            ) as response:
                status = response.status
                response_text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"GET {url} failed: {type(e).__name__}: {e}") from e

        if status >= 400:
            logger.error(f"GET {url} failed with status {status}")
            raise TransportError(f"HTTP {status} from {url}", status, response_text)

        try:
            body = json.loads(response_text) if response_text else None
        except json.JSONDecodeError as e:
            raise UnexpectedShapeError(f"Response from {url} is not JSON", status, response_text[:500]) from e

        if not isinstance(body, dict) or not isinstance(body.get("value"), list):
            raise UnexpectedShapeError(f"Response from {url} has no 'value' array", status, response_text[:500])

        logger.debug(f"GET {url} returned {len(body['value'])} records")
        return body

    async def iter_pages(
        self,
        entity_path: str,
        select: Optional[List[str]] = None,
        filter_expression: Optional[str] = None,
    ) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield one page of raw records at a time, following nextLink.

        The first request carries $select/$filter; continuation URLs are
        used verbatim. Any failure raises FetchError and ends iteration.
        """
        params: Optional[Dict[str, str]] = {}
        if select:
            params["$select"] = ",".join(select)
        if filter_expression:
            params["$filter"] = filter_expression

        url: Optional[str] = self._build_url(entity_path)
        page_number = 0

        while url:
            page_number += 1
            try:
                body = await self._get_page(url, params or None)
            except BCApiError as e:
                logger.error(f"Fetch of {entity_path} from {self.source} failed on page {page_number}: {e}")
                raise FetchError(self.source, entity_path, e) from e

            yield body["value"]

            url = body.get("@odata.nextLink")
            params = None

    async def iter_records(
        self,
        entity_path: str,
        select: Optional[List[str]] = None,
        filter_expression: Optional[str] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Yield raw records across all pages."""
        async for page in self.iter_pages(entity_path, select, filter_expression):
            for record in page:
                yield record

    async def fetch_all(
        self,
        entity_path: str,
        select: Optional[List[str]] = None,
        filter_expression: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Materialize every page of a collection into one list."""
        return [r async for r in self.iter_records(entity_path, select, filter_expression)]
