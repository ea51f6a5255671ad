"""
Transform Tests

Raw Business Central payloads -> mirrored models: source tagging, sentinel
handling, parent-key linkage for lines and required key fields.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from mirror import transforms
from mirror.errors import TransformValidationError
from mirror.normalize import ZERO_GUID


CUSTOMER_ID = "5d115c9c-44e3-ea11-bb43-000d3a2feca1"
INVOICE_ID = "f1b2c3d4-0000-4000-8000-00000000a001"


def v2_customer(**overrides):
    raw = {
        "id": CUSTOMER_ID,
        "number": "C001",
        "displayName": "Adatum Corporation",
        "addressLine1": "192 Market Square",
        "city": "Atlanta",
        "state": "GA",
        "country": "US",
        "postalCode": "31772",
        "balanceDue": 1234.56,
        "creditLimit": 0,
        "currencyCode": "",
        "lastModifiedDateTime": "2024-01-15T10:30:00.48Z",
    }
    raw.update(overrides)
    return raw


def v2_sales_invoice(**overrides):
    raw = {
        "id": INVOICE_ID,
        "number": "S-INV-103001",
        "invoiceDate": "2024-01-10",
        "postingDate": "2024-01-10",
        "dueDate": "0001-01-01",
        "customerId": CUSTOMER_ID,
        "customerNumber": "C001",
        "customerName": "Adatum Corporation",
        "billToCustomerId": ZERO_GUID,
        "sellToCity": "Atlanta",
        "shipToCity": "Savannah",
        "currencyCode": "USD",
        "totalAmountExcludingTax": 100,
        "totalTaxAmount": 8.5,
        "totalAmountIncludingTax": 108.5,
        "remainingAmount": 108.5,
        "status": "Open",
        "lastModifiedDateTime": "2024-01-15T11:00:00Z",
    }
    raw.update(overrides)
    return raw


def v2_invoice_line(**overrides):
    raw = {
        "id": "line-0001",
        "documentId": "upstream-doc-id-ignored",
        "sequence": 10000,
        "itemId": ZERO_GUID,
        "lineType": "Item",
        "lineObjectNumber": "1896-S",
        "description": "ATHENS Desk",
        "quantity": 2,
        "unitPrice": 50,
        "discountPercent": 0.155,
        "taxPercent": 8.5,
        "amountExcludingTax": 100,
        "shipmentDate": "0001-01-01",
    }
    raw.update(overrides)
    return raw


class TestCustomerTransforms:

    def test_v2_customer(self):
        customer = transforms.transform_v2_customer(v2_customer())

        assert customer.id == CUSTOMER_ID
        assert customer.customer_number == "C001"
        assert customer.display_name == "Adatum Corporation"
        assert customer.balance_due == Decimal("1234.56")
        assert customer.credit_limit == Decimal("0")
        assert customer.currency_code is None
        assert customer.last_modified == datetime(2024, 1, 15, 10, 30, 0, 480000, tzinfo=timezone.utc)
        assert customer.api_source == "v2.0"
        assert customer.warnings == []

    def test_source_tag_is_stamped(self):
        customer = transforms.transform_v2_customer(v2_customer(), source_tag="v2.0-sandbox")
        assert customer.api_source == "v2.0-sandbox"

    def test_missing_optional_fields_become_none(self):
        customer = transforms.transform_v2_customer({"id": CUSTOMER_ID, "number": "C002"})
        assert customer.display_name is None
        assert customer.balance_due is None
        assert customer.last_modified is None

    def test_missing_number_is_rejected(self):
        with pytest.raises(TransformValidationError) as exc_info:
            transforms.transform_v2_customer(v2_customer(number=""))
        assert exc_info.value.field == "number"
        assert exc_info.value.record_id == CUSTOMER_ID

    def test_tmc_customer_field_names(self):
        customer = transforms.transform_tmc_customer({
            "systemId": CUSTOMER_ID,
            "no": "C001",
            "name": "Adatum Corporation",
            "name2": "Adatum",
            "address": "192 Market Square",
            "county": "GA",
            "postCode": "31772",
            "countryRegionCode": "US",
            "eMail": "ap@adatum.example",
            "balanceLCY": "99.90",
        })

        assert customer.customer_number == "C001"
        assert customer.additional_name == "Adatum"
        assert customer.state == "GA"
        assert customer.email == "ap@adatum.example"
        assert customer.balance_due == Decimal("99.90")
        assert customer.api_source == "tmc"

    def test_to_row_excludes_warnings(self):
        row = transforms.transform_v2_customer(v2_customer(balanceDue="oops")).to_row()
        assert "warnings" not in row
        assert row["balance_due"] is None
        assert row["customer_number"] == "C001"


class TestDocumentTransforms:

    def test_sales_invoice_header(self):
        invoice = transforms.transform_v2_sales_invoice(v2_sales_invoice())

        assert invoice.invoice_number == "S-INV-103001"
        assert invoice.invoice_date == date(2024, 1, 10)
        assert invoice.due_date is None
        assert invoice.customer_id == CUSTOMER_ID
        assert invoice.bill_to_customer_id is None
        assert invoice.sell_to_city == "Atlanta"
        assert invoice.ship_to_city == "Savannah"
        assert invoice.total_amount_including_tax == Decimal("108.5")

    def test_line_uses_parent_key_not_document_id(self):
        line = transforms.transform_v2_sales_invoice_line(v2_invoice_line(), parent_key=INVOICE_ID)

        assert line.sales_invoice_id == INVOICE_ID
        assert line.item_id is None
        assert line.shipment_date is None
        assert line.discount_percent == Decimal("15.50")
        assert line.tax_percent == Decimal("8.5")
        assert line.quantity == Decimal("2")

    def test_line_without_parent_key_is_rejected(self):
        with pytest.raises(TransformValidationError):
            transforms.transform_v2_sales_invoice_line(v2_invoice_line())

    def test_line_discount_clamp_is_warned(self):
        line = transforms.transform_v2_purchase_invoice_line(
            v2_invoice_line(discountPercent=150, unitCost=12),
            parent_key="pinv-1",
        )
        assert line.discount_percent == Decimal("100")
        assert line.unit_cost == Decimal("12")
        assert len(line.warnings) == 1
        assert "discount_percent" in line.warnings[0]

    def test_purchase_order_line_quantities(self):
        line = transforms.transform_v2_purchase_order_line(
            v2_invoice_line(directUnitCost=3.25, receivedQuantity=1, invoicedQuantity=0),
            parent_key="po-1",
        )
        assert line.purchase_order_id == "po-1"
        assert line.direct_unit_cost == Decimal("3.25")
        assert line.received_quantity == Decimal("1")
        assert line.invoiced_quantity == Decimal("0")

    def test_purchase_credit_memo(self):
        memo = transforms.transform_v2_purchase_credit_memo({
            "id": "pcm-1",
            "number": "PCM-1001",
            "creditMemoDate": "2024-02-01",
            "vendorId": ZERO_GUID,
            "buyFromCity": "Chicago",
            "invoiceId": ZERO_GUID,
        })
        assert memo.number == "PCM-1001"
        assert memo.vendor_id is None
        assert memo.invoice_id is None
        assert memo.buy_from_city == "Chicago"


class TestLedgerTransforms:

    def test_general_ledger_entry_keyed_by_entry_number(self):
        entry = transforms.transform_v2_general_ledger_entry({
            "id": "gl-guid",
            "entryNumber": 1045,
            "postingDate": "2024-01-31",
            "accountId": ZERO_GUID,
            "accountNumber": "40100",
            "debitAmount": 0,
            "creditAmount": 250.75,
        })
        assert entry.entry_number == 1045
        assert entry.key() == (1045, "v2.0")
        assert entry.account_id is None
        assert entry.credit_amount == Decimal("250.75")

    def test_customer_ledger_entry_sentinels(self):
        entry = transforms.transform_tmc_customer_ledger_entry({
            "entryNo": 77,
            "postingDate": "2024-01-05",
            "dueDate": "0001-01-01",
            "customerNo": "C001",
            "amount": 10,
            "open": True,
            "closedByEntryNo": 0,
        })
        assert entry.entry_no == 77
        assert entry.due_date is None
        assert entry.closed_by_entry_no is None
        assert entry.open is True
        assert entry.api_source == "tmc"

    def test_missing_entry_number_is_rejected(self):
        with pytest.raises(TransformValidationError):
            transforms.transform_v2_general_ledger_entry({"id": "gl-guid"})


class TestCustomEntityTransforms:

    def test_ship_to_address(self):
        address = transforms.transform_tmc_ship_to_address({
            "systemId": "sta-1",
            "customerNo": "C001",
            "code": "MAIN",
            "city": "Savannah",
            "eMail": "dock@adatum.example",
            "SystemCreatedAt": "2023-06-01T08:00:00Z",
        })
        assert address.key() == ("sta-1", "tmc")
        assert address.email == "dock@adatum.example"
        assert address.system_created_at == datetime(2023, 6, 1, 8, 0, tzinfo=timezone.utc)

    def test_job(self):
        job = transforms.transform_tmc_job({
            "systemId": "job-1",
            "no": "J-0001",
            "status": "Open",
            "nextInvoiceDate": "0001-01-01",
        })
        assert job.no == "J-0001"
        assert job.next_invoice_date is None

    def test_billing_schedule_line_composite_key(self):
        line = transforms.transform_tmc_billing_schedule_line({
            "BssiArcbBillingScheduleNumber": "BS-0001",
            "LineNo": "20000",
            "Type_": "Item",
            "ItemNo": "1896-S",
            "ShiptoCode": "MAIN",
        })
        assert line.key() == ("BS-0001", 20000, "tmc")
        assert line.type == "Item"
        assert line.ship_to_code == "MAIN"
