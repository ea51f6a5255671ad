"""Custom integration API (tmc/CISSDMIntegration) adapter.

The custom pages expose their own shapes for the same logical objects
(`no`/`name` rather than `number`/`displayName`) and a few collections the
standard API lacks. No $select is sent: the pages are already narrow.
"""

from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional

from connectors.business_central.bc_client import ODataClient

TMC_SOURCE = "tmc"

Records = AsyncIterator[Dict[str, Any]]


class TmcApiAdapter(ODataClient):
    """Reader for the `api/tmc/CISSDMIntegration/v1.0` surface."""

    source = TMC_SOURCE

    def _collection(self, path: str, modified_since: Optional[datetime]) -> Records:
        return self.iter_records(path, filter_expression=self.modified_since_filter(modified_since))

    def customers(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("customers", modified_since)

    def customer_ledger_entries(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("CustLedgerEntries", modified_since)

    def ship_to_addresses(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("shipToAddresses", modified_since)

    def jobs(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("jobs", modified_since)

    def billing_schedule_lines(self, modified_since: Optional[datetime] = None) -> Records:
        # The page has no lastModifiedDateTime; always a full read
        return self.iter_records("bssiArcbBillingScheduleLines")
