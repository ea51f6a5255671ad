"""
Business Central Client Tests

OData paging, error wrapping, request shaping and the shared credential
provider, driven through an in-memory fake of the aiohttp session.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from connectors.business_central.bc_auth import BCAuthConfig, BCCredentialProvider, BCToken
from connectors.business_central.bc_client import (
    BCApiConfig,
    CredentialError,
    FetchError,
    TransportError,
    UnexpectedShapeError,
    format_odata_datetime,
)
from connectors.business_central.tmc_api import TmcApiAdapter
from connectors.business_central.v2_api import V2ApiAdapter


TENANT = "contoso-tenant"
COMPANY = "c0a1b2c3-0000-4000-8000-000000000001"
V2_BASE = f"https://api.businesscentral.dynamics.com/v2.0/{TENANT}/production/api/v2.0/companies({COMPANY})"
TMC_BASE = (
    f"https://api.businesscentral.dynamics.com/v2.0/{TENANT}/production/api/"
    f"tmc/CISSDMIntegration/v1.0/companies({COMPANY})"
)


# =============================================================================
# Fakes
# =============================================================================

class FakeResponse:
    def __init__(self, status: int, body: Any):
        self.status = status
        self._body = body

    async def text(self) -> str:
        if isinstance(self._body, str):
            return self._body
        return json.dumps(self._body)

    async def json(self) -> Any:
        return self._body

    async def __aenter__(self):
        # Yield once so concurrent callers interleave
        await asyncio.sleep(0)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Answers GETs from a url -> (status, body) map and POSTs with a token."""

    def __init__(self, pages: Optional[Dict[str, Any]] = None, token_status: int = 200):
        self.pages = pages or {}
        self.token_status = token_status
        self.requests: List[Dict[str, Any]] = []
        self.token_requests = 0

    def request(self, method, url, headers=None, params=None, timeout=None):
        self.requests.append({"method": method, "url": url, "headers": headers, "params": params})
        status, body = self.pages.get(url, (404, {"error": {"code": "NotFound"}}))
        return FakeResponse(status, body)

    def post(self, url, data=None, headers=None, timeout=None):
        self.token_requests += 1
        if self.token_status != 200:
            return FakeResponse(self.token_status, "AADSTS7000215: Invalid client secret")
        return FakeResponse(200, {
            "access_token": f"token-{self.token_requests}",
            "token_type": "Bearer",
            "expires_in": 3599,
        })

    async def close(self):
        pass


def auth_config() -> BCAuthConfig:
    return BCAuthConfig(tenant_id=TENANT, client_id="client", client_secret="secret")


def make_adapter(cls, session: FakeSession, api_path: str = "v2.0"):
    credentials = BCCredentialProvider(auth_config(), session=session)
    config = BCApiConfig(tenant_id=TENANT, company_id=COMPANY, api_path=api_path, page_size=2)
    return cls(credentials, config, session=session)


async def collect(iterator) -> List[Dict[str, Any]]:
    return [record async for record in iterator]


def page(records, next_link=None):
    body = {"@odata.context": "ctx", "value": records}
    if next_link:
        body["@odata.nextLink"] = next_link
    return (200, body)


# =============================================================================
# Tests
# =============================================================================

class TestUrls:

    def test_v2_company_url(self):
        config = BCApiConfig(tenant_id=TENANT, company_id=COMPANY)
        assert config.get_company_url() == V2_BASE

    def test_custom_api_company_url(self):
        config = BCApiConfig(tenant_id=TENANT, company_id=COMPANY, api_path="tmc/CISSDMIntegration/v1.0")
        assert config.get_company_url() == TMC_BASE

    def test_missing_company_is_rejected(self):
        with pytest.raises(ValueError):
            BCApiConfig(tenant_id=TENANT, company_id="").get_company_url()

    def test_odata_datetime_literal(self):
        ts = datetime(2024, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
        assert format_odata_datetime(ts) == "2024-01-15T10:30:00.123Z"


class TestPagination:

    def test_follows_next_link_until_exhausted(self):
        next_url = f"{V2_BASE}/customers?$skiptoken=abc"
        session = FakeSession({
            f"{V2_BASE}/customers": page([{"id": "1"}, {"id": "2"}], next_link=next_url),
            next_url: page([{"id": "3"}]),
        })
        adapter = make_adapter(V2ApiAdapter, session)

        records = asyncio.run(collect(adapter.customers()))

        assert [r["id"] for r in records] == ["1", "2", "3"]
        assert [r["url"] for r in session.requests] == [f"{V2_BASE}/customers", next_url]

    def test_first_request_carries_select_and_filter(self):
        next_url = f"{V2_BASE}/customers?$skiptoken=abc"
        session = FakeSession({
            f"{V2_BASE}/customers": page([{"id": "1"}], next_link=next_url),
            next_url: page([]),
        })
        adapter = make_adapter(V2ApiAdapter, session)
        since = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

        asyncio.run(collect(adapter.customers(modified_since=since)))

        first, second = session.requests
        assert first["params"]["$filter"] == "lastModifiedDateTime gt 2024-01-15T10:30:00.000Z"
        assert "number" in first["params"]["$select"].split(",")
        # Continuation links already encode the query
        assert second["params"] is None

    def test_no_checkpoint_means_no_filter(self):
        session = FakeSession({f"{V2_BASE}/vendors": page([])})
        adapter = make_adapter(V2ApiAdapter, session)

        asyncio.run(collect(adapter.vendors()))

        assert "$filter" not in session.requests[0]["params"]

    def test_request_headers(self):
        session = FakeSession({f"{V2_BASE}/items": page([])})
        adapter = make_adapter(V2ApiAdapter, session)

        asyncio.run(collect(adapter.items()))

        headers = session.requests[0]["headers"]
        assert headers["Authorization"] == "Bearer token-1"
        assert headers["Prefer"] == "odata.maxpagesize=2"

    def test_fetch_all_materializes_every_page(self):
        next_url = f"{V2_BASE}/accounts?$skiptoken=1"
        session = FakeSession({
            f"{V2_BASE}/accounts": page([{"id": "a1"}, {"id": "a2"}], next_link=next_url),
            next_url: page([{"id": "a3"}]),
        })
        adapter = make_adapter(V2ApiAdapter, session)

        records = asyncio.run(adapter.fetch_all("accounts", select=["id"]))

        assert [r["id"] for r in records] == ["a1", "a2", "a3"]
        assert session.requests[0]["params"] == {"$select": "id"}

    def test_lines_are_fetched_under_their_document(self):
        url = f"{V2_BASE}/salesInvoices(inv-1)/salesInvoiceLines"
        session = FakeSession({url: page([{"id": "l1"}, {"id": "l2"}])})
        adapter = make_adapter(V2ApiAdapter, session)

        lines = asyncio.run(collect(adapter.sales_invoice_lines("inv-1")))

        assert [l["id"] for l in lines] == ["l1", "l2"]

    def test_custom_api_sends_no_select(self):
        session = FakeSession({f"{TMC_BASE}/CustLedgerEntries": page([{"entryNo": 1}])})
        adapter = make_adapter(TmcApiAdapter, session, api_path="tmc/CISSDMIntegration/v1.0")

        records = asyncio.run(collect(adapter.customer_ledger_entries()))

        assert records == [{"entryNo": 1}]
        assert session.requests[0]["params"] is None

    def test_billing_schedule_lines_ignore_checkpoint(self):
        session = FakeSession({f"{TMC_BASE}/bssiArcbBillingScheduleLines": page([])})
        adapter = make_adapter(TmcApiAdapter, session, api_path="tmc/CISSDMIntegration/v1.0")

        asyncio.run(collect(adapter.billing_schedule_lines(datetime(2024, 1, 1, tzinfo=timezone.utc))))

        assert session.requests[0]["params"] is None


class TestFailures:

    def test_failure_on_page_three_raises_fetch_error(self):
        p2 = f"{V2_BASE}/generalLedgerEntries?$skiptoken=2"
        p3 = f"{V2_BASE}/generalLedgerEntries?$skiptoken=3"
        session = FakeSession({
            f"{V2_BASE}/generalLedgerEntries": page([{"entryNumber": 1}], next_link=p2),
            p2: page([{"entryNumber": 2}], next_link=p3),
            p3: (500, {"error": {"code": "InternalServerError"}}),
        })
        adapter = make_adapter(V2ApiAdapter, session)
        seen = []

        async def consume():
            async for record in adapter.general_ledger_entries():
                seen.append(record["entryNumber"])

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(consume())

        error = exc_info.value
        assert seen == [1, 2]
        assert error.source == "v2.0"
        assert error.entity_path == "generalLedgerEntries"
        assert error.http_status == 500
        assert isinstance(error.cause, TransportError)
        assert "InternalServerError" in error.cause.response_body

    def test_missing_value_array_is_unexpected_shape(self):
        session = FakeSession({f"{V2_BASE}/accounts": (200, {"error": "nope"})})
        adapter = make_adapter(V2ApiAdapter, session)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(collect(adapter.accounts()))
        assert isinstance(exc_info.value.cause, UnexpectedShapeError)

    def test_non_json_body_is_unexpected_shape(self):
        session = FakeSession({f"{V2_BASE}/accounts": (200, "<html>maintenance</html>")})
        adapter = make_adapter(V2ApiAdapter, session)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(collect(adapter.accounts()))
        assert isinstance(exc_info.value.cause, UnexpectedShapeError)

    def test_credential_failure_surfaces_as_fetch_error(self):
        session = FakeSession({f"{V2_BASE}/customers": page([])}, token_status=401)
        adapter = make_adapter(V2ApiAdapter, session)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(collect(adapter.customers()))

        cause = exc_info.value.cause
        assert isinstance(cause, CredentialError)
        assert cause.status_code == 401
        assert session.requests == []


class TestCredentialProvider:

    def test_concurrent_callers_share_one_token_request(self):
        session = FakeSession()
        provider = BCCredentialProvider(auth_config(), session=session)

        async def many():
            return await asyncio.gather(*[provider.get_valid_credential() for _ in range(5)])

        tokens = asyncio.run(many())

        assert session.token_requests == 1
        assert {t.access_token for t in tokens} == {"token-1"}

    def test_valid_token_is_reused(self):
        session = FakeSession()
        provider = BCCredentialProvider(auth_config(), session=session)

        async def twice():
            first = await provider.get_valid_credential()
            second = await provider.get_valid_credential()
            return first, second

        first, second = asyncio.run(twice())
        assert first is second
        assert session.token_requests == 1

    def test_token_near_expiry_is_refreshed(self):
        session = FakeSession()
        provider = BCCredentialProvider(auth_config(), session=session)
        provider._token = BCToken(
            access_token="old",
            token_type="Bearer",
            expires_in=3600,
            obtained_at=datetime.now(timezone.utc) - timedelta(minutes=57),
        )

        token = asyncio.run(provider.get_valid_credential())

        assert token.access_token == "token-1"
        assert session.token_requests == 1

    def test_token_endpoint(self):
        assert auth_config().token_endpoint == (
            f"https://login.microsoftonline.com/{TENANT}/oauth2/v2.0/token"
        )
