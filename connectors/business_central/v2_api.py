"""Standard Business Central API (v2.0) adapter.

One method per collection; each returns an async iterator of raw records
with the $select list the mirror needs. Top-level collections accept an
optional `modified_since` checkpoint. Document lines are always fetched in
full for one parent document.
"""

from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional

from connectors.business_central.bc_client import ODataClient

V2_SOURCE = "v2.0"

CUSTOMER_FIELDS = [
    "id", "number", "displayName", "addressLine1", "addressLine2", "city", "state",
    "postalCode", "country", "phoneNumber", "email", "website", "balanceDue",
    "creditLimit", "taxRegistrationNumber", "currencyCode", "lastModifiedDateTime",
]

VENDOR_FIELDS = [
    "id", "number", "displayName", "addressLine1", "addressLine2", "city", "state",
    "country", "postalCode", "phoneNumber", "email", "website", "taxRegistrationNumber",
    "currencyCode", "irs1099Code", "paymentTermsId", "paymentMethodId", "taxLiable",
    "blocked", "balance", "lastModifiedDateTime",
]

ITEM_FIELDS = [
    "id", "number", "displayName", "displayName2", "type", "itemCategoryId",
    "itemCategoryCode", "blocked", "gtin", "inventory", "unitPrice", "priceIncludesTax",
    "unitCost", "taxGroupId", "taxGroupCode", "baseUnitOfMeasureId", "baseUnitOfMeasureCode",
    "generalProductPostingGroupId", "generalProductPostingGroupCode",
    "inventoryPostingGroupId", "inventoryPostingGroupCode", "lastModifiedDateTime",
]

_DOCUMENT_TOTALS = [
    "pricesIncludeTax", "discountAmount", "discountAppliedBeforeTax",
    "totalAmountExcludingTax", "totalTaxAmount", "totalAmountIncludingTax",
    "status", "lastModifiedDateTime",
]

SALES_INVOICE_FIELDS = [
    "id", "number", "externalDocumentNumber", "invoiceDate", "postingDate", "dueDate",
    "promisedPayDate", "customerPurchaseOrderReference", "customerId", "customerNumber",
    "customerName", "billToName", "billToCustomerId", "billToCustomerNumber", "shipToName",
    "shipToContact", "sellToAddressLine1", "sellToAddressLine2", "sellToCity", "sellToState",
    "sellToPostCode", "sellToCountry", "billToAddressLine1", "billToAddressLine2",
    "billToCity", "billToState", "billToPostCode", "billToCountry", "shipToAddressLine1",
    "shipToAddressLine2", "shipToCity", "shipToState", "shipToPostCode", "shipToCountry",
    "currencyCode", "paymentTermsId", "shipmentMethodId", "salesperson", "remainingAmount",
    "phoneNumber", "email",
] + _DOCUMENT_TOTALS

SALES_CREDIT_MEMO_FIELDS = [
    "id", "number", "externalDocumentNumber", "creditMemoDate", "postingDate", "dueDate",
    "customerId", "customerNumber", "customerName", "billToName", "billToCustomerId",
    "billToCustomerNumber", "sellToAddressLine1", "sellToAddressLine2", "sellToCity",
    "sellToState", "sellToPostCode", "sellToCountry", "billToAddressLine1",
    "billToAddressLine2", "billToCity", "billToState", "billToPostCode", "billToCountry",
    "currencyCode", "paymentTermsId", "shipmentMethodId", "salesperson", "invoiceId",
    "invoiceNumber", "phoneNumber", "email", "customerReturnReasonId",
] + _DOCUMENT_TOTALS

PURCHASE_INVOICE_FIELDS = [
    "id", "number", "postingDate", "invoiceDate", "dueDate", "vendorInvoiceNumber",
    "vendorId", "vendorNumber", "vendorName", "payToName", "payToContact", "payToVendorId",
    "payToVendorNumber", "shipToName", "shipToContact", "buyFromAddressLine1",
    "buyFromAddressLine2", "buyFromCity", "buyFromState", "buyFromPostCode", "buyFromCountry",
    "shipToAddressLine1", "shipToAddressLine2", "shipToCity", "shipToState", "shipToPostCode",
    "shipToCountry", "payToAddressLine1", "payToAddressLine2", "payToCity", "payToState",
    "payToPostCode", "payToCountry", "currencyCode", "orderId", "orderNumber", "purchaser",
] + _DOCUMENT_TOTALS

PURCHASE_ORDER_FIELDS = [
    "id", "number", "orderDate", "postingDate", "vendorId", "vendorNumber", "vendorName",
    "payToName", "payToVendorId", "payToVendorNumber", "shipToName", "shipToContact",
    "buyFromAddressLine1", "buyFromAddressLine2", "buyFromCity", "buyFromState",
    "buyFromPostCode", "buyFromCountry", "payToAddressLine1", "payToAddressLine2",
    "payToCity", "payToState", "payToPostCode", "payToCountry", "shipToAddressLine1",
    "shipToAddressLine2", "shipToCity", "shipToState", "shipToPostCode", "shipToCountry",
    "shortcutDimension1Code", "shortcutDimension2Code", "currencyCode", "paymentTermsId",
    "shipmentMethodId", "purchaser", "requestedReceiptDate", "fullyReceived",
] + _DOCUMENT_TOTALS

PURCHASE_CREDIT_MEMO_FIELDS = [
    "id", "number", "creditMemoDate", "postingDate", "dueDate", "vendorId", "vendorNumber",
    "vendorName", "payToVendorId", "payToVendorNumber", "payToName", "buyFromAddressLine1",
    "buyFromAddressLine2", "buyFromCity", "buyFromState", "buyFromPostCode", "buyFromCountry",
    "payToAddressLine1", "payToAddressLine2", "payToCity", "payToState", "payToPostCode",
    "payToCountry", "shortcutDimension1Code", "shortcutDimension2Code", "currencyCode",
    "paymentTermsId", "shipmentMethodId", "purchaser", "invoiceId", "invoiceNumber",
    "vendorReturnReasonId",
] + _DOCUMENT_TOTALS

_LINE_FIELDS = [
    "id", "documentId", "sequence", "itemId", "accountId", "lineType", "lineObjectNumber",
    "description", "unitOfMeasureId", "unitOfMeasureCode", "quantity", "discountAmount",
    "discountPercent", "discountAppliedBeforeTax", "amountExcludingTax", "taxCode",
    "taxPercent", "totalTaxAmount", "amountIncludingTax", "invoiceDiscountAllocation",
    "netAmount", "netTaxAmount", "netAmountIncludingTax", "itemVariantId", "locationId",
]

SALES_INVOICE_LINE_FIELDS = _LINE_FIELDS + ["description2", "unitPrice", "shipmentDate"]
SALES_CREDIT_MEMO_LINE_FIELDS = _LINE_FIELDS + ["description2", "unitPrice", "shipmentDate"]
PURCHASE_INVOICE_LINE_FIELDS = _LINE_FIELDS + ["description2", "unitCost", "expectedReceiptDate"]
PURCHASE_ORDER_LINE_FIELDS = _LINE_FIELDS + [
    "description2", "directUnitCost", "expectedReceiptDate", "receivedQuantity",
    "invoicedQuantity", "invoiceQuantity", "receiveQuantity",
]
PURCHASE_CREDIT_MEMO_LINE_FIELDS = _LINE_FIELDS + ["unitCost"]

GENERAL_LEDGER_ENTRY_FIELDS = [
    "id", "entryNumber", "postingDate", "documentNumber", "documentType", "accountId",
    "accountNumber", "description", "debitAmount", "creditAmount",
    "additionalCurrencyDebitAmount", "additionalCurrencyCreditAmount", "lastModifiedDateTime",
]

ACCOUNT_FIELDS = [
    "id", "number", "displayName", "category", "subCategory", "blocked", "accountType",
    "directPosting", "netChange", "consolidationTranslationMethod",
    "consolidationDebitAccount", "consolidationCreditAccount", "excludeFromConsolidation",
    "lastModifiedDateTime",
]

BANK_ACCOUNT_FIELDS = [
    "id", "number", "displayName", "bankAccountNumber", "blocked", "currencyCode",
    "currencyId", "iban", "intercompanyEnabled", "lastModifiedDateTime",
]

Records = AsyncIterator[Dict[str, Any]]


class V2ApiAdapter(ODataClient):
    """Reader for the standard `api/v2.0` surface."""

    source = V2_SOURCE

    def _collection(self, path: str, fields, modified_since: Optional[datetime]) -> Records:
        return self.iter_records(path, select=fields, filter_expression=self.modified_since_filter(modified_since))

    # Master data

    def customers(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("customers", CUSTOMER_FIELDS, modified_since)

    def vendors(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("vendors", VENDOR_FIELDS, modified_since)

    def items(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("items", ITEM_FIELDS, modified_since)

    def accounts(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("accounts", ACCOUNT_FIELDS, modified_since)

    def bank_accounts(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("bankAccounts", BANK_ACCOUNT_FIELDS, modified_since)

    def general_ledger_entries(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("generalLedgerEntries", GENERAL_LEDGER_ENTRY_FIELDS, modified_since)

    # Documents and their lines

    def sales_invoices(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("salesInvoices", SALES_INVOICE_FIELDS, modified_since)

    def sales_invoice_lines(self, invoice_id: str) -> Records:
        return self.iter_records(f"salesInvoices({invoice_id})/salesInvoiceLines", select=SALES_INVOICE_LINE_FIELDS)

    def sales_credit_memos(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("salesCreditMemos", SALES_CREDIT_MEMO_FIELDS, modified_since)

    def sales_credit_memo_lines(self, credit_memo_id: str) -> Records:
        return self.iter_records(
            f"salesCreditMemos({credit_memo_id})/salesCreditMemoLines", select=SALES_CREDIT_MEMO_LINE_FIELDS
        )

    def purchase_invoices(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("purchaseInvoices", PURCHASE_INVOICE_FIELDS, modified_since)

    def purchase_invoice_lines(self, invoice_id: str) -> Records:
        return self.iter_records(
            f"purchaseInvoices({invoice_id})/purchaseInvoiceLines", select=PURCHASE_INVOICE_LINE_FIELDS
        )

    def purchase_orders(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("purchaseOrders", PURCHASE_ORDER_FIELDS, modified_since)

    def purchase_order_lines(self, order_id: str) -> Records:
        return self.iter_records(f"purchaseOrders({order_id})/purchaseOrderLines", select=PURCHASE_ORDER_LINE_FIELDS)

    def purchase_credit_memos(self, modified_since: Optional[datetime] = None) -> Records:
        return self._collection("purchaseCreditMemos", PURCHASE_CREDIT_MEMO_FIELDS, modified_since)

    def purchase_credit_memo_lines(self, credit_memo_id: str) -> Records:
        return self.iter_records(
            f"purchaseCreditMemos({credit_memo_id})/purchaseCreditMemoLines", select=PURCHASE_CREDIT_MEMO_LINE_FIELDS
        )
