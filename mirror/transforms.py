"""Raw upstream record -> mirrored model transforms.

One function per entity per API surface. Transforms are pure: they read the
raw dict, normalize values through `mirror.normalize`, stamp the source tag
and return a model. Data corrections are recorded on `record.warnings`.

Missing optional fields become None. Missing key fields raise
TransformValidationError. Line transforms take the parent's local key and
ignore the upstream `documentId`.
"""

from typing import Any, Dict, List, Optional

from connectors.business_central.tmc_api import TMC_SOURCE
from connectors.business_central.v2_api import V2_SOURCE
from mirror.errors import TransformValidationError
from mirror.models import (
    Account,
    BankAccount,
    BillingScheduleLine,
    Customer,
    CustomerLedgerEntry,
    GeneralLedgerEntry,
    Item,
    Job,
    PurchaseCreditMemo,
    PurchaseCreditMemoLine,
    PurchaseInvoice,
    PurchaseInvoiceLine,
    PurchaseOrder,
    PurchaseOrderLine,
    SalesCreditMemo,
    SalesCreditMemoLine,
    SalesInvoice,
    SalesInvoiceLine,
    ShipToAddress,
    Vendor,
)
from mirror.normalize import (
    normalize_bool,
    normalize_date,
    normalize_datetime,
    normalize_decimal,
    normalize_entry_reference,
    normalize_int,
    normalize_percent,
    normalize_reference,
    normalize_text,
)

Raw = Dict[str, Any]


# =============================================================================
# Helpers
# =============================================================================

def _record_id(raw: Raw) -> Optional[str]:
    for name in ("id", "systemId", "number", "no", "entryNo", "entryNumber"):
        if raw.get(name) not in (None, ""):
            return str(raw[name])
    return None


def _require(raw: Raw, field: str, entity: str) -> Any:
    value = raw.get(field)
    if value is None or (isinstance(value, str) and value.strip() == ""):
        raise TransformValidationError(entity, field, _record_id(raw))
    return value


def _require_str(raw: Raw, field: str, entity: str) -> str:
    return str(_require(raw, field, entity))


def _require_int(raw: Raw, field: str, entity: str) -> int:
    value = normalize_int(_require(raw, field, entity))
    if value is None:
        raise TransformValidationError(entity, field, _record_id(raw))
    return value


def _require_parent(parent_key: Optional[str], entity: str, field: str, raw: Raw) -> str:
    if not parent_key:
        raise TransformValidationError(entity, field, _record_id(raw))
    return parent_key


def _text(raw: Raw, field: str) -> Optional[str]:
    return normalize_text(raw.get(field))


def _address(raw: Raw, raw_prefix: str, prefix: str) -> Dict[str, Optional[str]]:
    """Map the six-field BC address block (e.g. sellTo*) to snake_case columns."""
    return {
        f"{prefix}_address_line1": _text(raw, f"{raw_prefix}AddressLine1"),
        f"{prefix}_address_line2": _text(raw, f"{raw_prefix}AddressLine2"),
        f"{prefix}_city": _text(raw, f"{raw_prefix}City"),
        f"{prefix}_state": _text(raw, f"{raw_prefix}State"),
        f"{prefix}_post_code": _text(raw, f"{raw_prefix}PostCode"),
        f"{prefix}_country": _text(raw, f"{raw_prefix}Country"),
    }


def _document_totals(raw: Raw, warnings: List[str]) -> Dict[str, Any]:
    return {
        "currency_code": _text(raw, "currencyCode"),
        "prices_include_tax": normalize_bool(raw.get("pricesIncludeTax")),
        "discount_amount": normalize_decimal(raw.get("discountAmount"), warnings, "discount_amount"),
        "discount_applied_before_tax": normalize_bool(raw.get("discountAppliedBeforeTax")),
        "total_amount_excluding_tax": normalize_decimal(
            raw.get("totalAmountExcludingTax"), warnings, "total_amount_excluding_tax"
        ),
        "total_tax_amount": normalize_decimal(raw.get("totalTaxAmount"), warnings, "total_tax_amount"),
        "total_amount_including_tax": normalize_decimal(
            raw.get("totalAmountIncludingTax"), warnings, "total_amount_including_tax"
        ),
        "status": _text(raw, "status"),
        "last_modified": normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
    }


def _line_fields(raw: Raw, warnings: List[str]) -> Dict[str, Any]:
    """Columns shared by every document line type."""
    def amount(name: str, column: str):
        return normalize_decimal(raw.get(name), warnings, column)

    return {
        "sequence": normalize_int(raw.get("sequence")),
        "item_id": normalize_reference(raw.get("itemId")),
        "account_id": normalize_reference(raw.get("accountId")),
        "line_type": _text(raw, "lineType"),
        "line_object_number": _text(raw, "lineObjectNumber"),
        "description": _text(raw, "description"),
        "unit_of_measure_id": normalize_reference(raw.get("unitOfMeasureId")),
        "unit_of_measure_code": _text(raw, "unitOfMeasureCode"),
        "quantity": amount("quantity", "quantity"),
        "discount_amount": amount("discountAmount", "discount_amount"),
        "discount_percent": normalize_percent(raw.get("discountPercent"), warnings, "discount_percent"),
        "discount_applied_before_tax": normalize_bool(raw.get("discountAppliedBeforeTax")),
        "amount_excluding_tax": amount("amountExcludingTax", "amount_excluding_tax"),
        "tax_code": _text(raw, "taxCode"),
        "tax_percent": amount("taxPercent", "tax_percent"),
        "total_tax_amount": amount("totalTaxAmount", "total_tax_amount"),
        "amount_including_tax": amount("amountIncludingTax", "amount_including_tax"),
        "invoice_discount_allocation": amount("invoiceDiscountAllocation", "invoice_discount_allocation"),
        "net_amount": amount("netAmount", "net_amount"),
        "net_tax_amount": amount("netTaxAmount", "net_tax_amount"),
        "net_amount_including_tax": amount("netAmountIncludingTax", "net_amount_including_tax"),
        "item_variant_id": normalize_reference(raw.get("itemVariantId")),
        "location_id": normalize_reference(raw.get("locationId")),
    }


# =============================================================================
# Master Data
# =============================================================================

def transform_v2_customer(raw: Raw, source_tag: str = V2_SOURCE) -> Customer:
    warnings: List[str] = []
    return Customer(
        id=_require_str(raw, "id", "customer"),
        customer_number=_require_str(raw, "number", "customer"),
        display_name=_text(raw, "displayName"),
        additional_name=_text(raw, "additionalName"),
        address_line1=_text(raw, "addressLine1"),
        address_line2=_text(raw, "addressLine2"),
        city=_text(raw, "city"),
        state=_text(raw, "state"),
        postal_code=_text(raw, "postalCode"),
        country=_text(raw, "country"),
        phone_number=_text(raw, "phoneNumber"),
        email=_text(raw, "email"),
        website=_text(raw, "website"),
        balance_due=normalize_decimal(raw.get("balanceDue"), warnings, "balance_due"),
        credit_limit=normalize_decimal(raw.get("creditLimit"), warnings, "credit_limit"),
        tax_registration_number=_text(raw, "taxRegistrationNumber"),
        currency_code=_text(raw, "currencyCode"),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_tmc_customer(raw: Raw, source_tag: str = TMC_SOURCE) -> Customer:
    """The custom customer page uses NAV-style names (no, name, eMail, ...)."""
    warnings: List[str] = []
    return Customer(
        id=_require_str(raw, "systemId", "customer"),
        customer_number=_require_str(raw, "no", "customer"),
        display_name=_text(raw, "name"),
        additional_name=_text(raw, "name2"),
        address_line1=_text(raw, "address"),
        address_line2=_text(raw, "address2"),
        city=_text(raw, "city"),
        state=_text(raw, "county"),
        postal_code=_text(raw, "postCode"),
        country=_text(raw, "countryRegionCode"),
        phone_number=_text(raw, "phoneNo"),
        email=_text(raw, "eMail"),
        website=_text(raw, "homePage"),
        balance_due=normalize_decimal(raw.get("balanceLCY"), warnings, "balance_due"),
        credit_limit=normalize_decimal(raw.get("creditLimitLCY"), warnings, "credit_limit"),
        tax_registration_number=_text(raw, "vatRegistrationNo"),
        currency_code=_text(raw, "currencyCode"),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_v2_vendor(raw: Raw, source_tag: str = V2_SOURCE) -> Vendor:
    warnings: List[str] = []
    return Vendor(
        id=_require_str(raw, "id", "vendor"),
        vendor_number=_require_str(raw, "number", "vendor"),
        display_name=_text(raw, "displayName"),
        address_line1=_text(raw, "addressLine1"),
        address_line2=_text(raw, "addressLine2"),
        city=_text(raw, "city"),
        state=_text(raw, "state"),
        country=_text(raw, "country"),
        postal_code=_text(raw, "postalCode"),
        phone_number=_text(raw, "phoneNumber"),
        email=_text(raw, "email"),
        website=_text(raw, "website"),
        tax_registration_number=_text(raw, "taxRegistrationNumber"),
        currency_code=_text(raw, "currencyCode"),
        irs1099_code=_text(raw, "irs1099Code"),
        payment_terms_id=normalize_reference(raw.get("paymentTermsId")),
        payment_method_id=normalize_reference(raw.get("paymentMethodId")),
        tax_liable=normalize_bool(raw.get("taxLiable")),
        blocked=_text(raw, "blocked"),
        balance=normalize_decimal(raw.get("balance"), warnings, "balance"),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_v2_item(raw: Raw, source_tag: str = V2_SOURCE) -> Item:
    warnings: List[str] = []
    return Item(
        id=_require_str(raw, "id", "item"),
        item_no=_require_str(raw, "number", "item"),
        display_name=_text(raw, "displayName"),
        display_name2=_text(raw, "displayName2"),
        type=_text(raw, "type"),
        item_category_id=normalize_reference(raw.get("itemCategoryId")),
        item_category_code=_text(raw, "itemCategoryCode"),
        blocked=normalize_bool(raw.get("blocked")),
        gtin=_text(raw, "gtin"),
        inventory=normalize_decimal(raw.get("inventory"), warnings, "inventory"),
        unit_price=normalize_decimal(raw.get("unitPrice"), warnings, "unit_price"),
        price_includes_tax=normalize_bool(raw.get("priceIncludesTax")),
        unit_cost=normalize_decimal(raw.get("unitCost"), warnings, "unit_cost"),
        tax_group_id=normalize_reference(raw.get("taxGroupId")),
        tax_group_code=_text(raw, "taxGroupCode"),
        base_unit_of_measure_id=normalize_reference(raw.get("baseUnitOfMeasureId")),
        base_unit_of_measure_code=_text(raw, "baseUnitOfMeasureCode"),
        general_product_posting_group_id=normalize_reference(raw.get("generalProductPostingGroupId")),
        general_product_posting_group_code=_text(raw, "generalProductPostingGroupCode"),
        inventory_posting_group_id=normalize_reference(raw.get("inventoryPostingGroupId")),
        inventory_posting_group_code=_text(raw, "inventoryPostingGroupCode"),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_v2_account(raw: Raw, source_tag: str = V2_SOURCE) -> Account:
    warnings: List[str] = []
    return Account(
        id=_require_str(raw, "id", "account"),
        number=_require_str(raw, "number", "account"),
        display_name=_text(raw, "displayName"),
        category=_text(raw, "category"),
        sub_category=_text(raw, "subCategory"),
        blocked=normalize_bool(raw.get("blocked")),
        account_type=_text(raw, "accountType"),
        direct_posting=normalize_bool(raw.get("directPosting")),
        net_change=normalize_decimal(raw.get("netChange"), warnings, "net_change"),
        consolidation_translation_method=_text(raw, "consolidationTranslationMethod"),
        consolidation_debit_account=_text(raw, "consolidationDebitAccount"),
        consolidation_credit_account=_text(raw, "consolidationCreditAccount"),
        exclude_from_consolidation=normalize_bool(raw.get("excludeFromConsolidation")),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_v2_bank_account(raw: Raw, source_tag: str = V2_SOURCE) -> BankAccount:
    warnings: List[str] = []
    return BankAccount(
        id=_require_str(raw, "id", "bank_account"),
        number=_require_str(raw, "number", "bank_account"),
        display_name=_text(raw, "displayName"),
        bank_account_number=_text(raw, "bankAccountNumber"),
        blocked=normalize_bool(raw.get("blocked")),
        currency_code=_text(raw, "currencyCode"),
        currency_id=normalize_reference(raw.get("currencyId")),
        iban=_text(raw, "iban"),
        intercompany_enabled=normalize_bool(raw.get("intercompanyEnabled")),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


# =============================================================================
# Sales Documents
# =============================================================================

def _sales_header(raw: Raw, warnings: List[str]) -> Dict[str, Any]:
    fields = {
        "external_document_number": _text(raw, "externalDocumentNumber"),
        "posting_date": normalize_date(raw.get("postingDate"), warnings, "posting_date"),
        "due_date": normalize_date(raw.get("dueDate"), warnings, "due_date"),
        "customer_id": normalize_reference(raw.get("customerId")),
        "customer_number": _text(raw, "customerNumber"),
        "customer_name": _text(raw, "customerName"),
        "bill_to_name": _text(raw, "billToName"),
        "bill_to_customer_id": normalize_reference(raw.get("billToCustomerId")),
        "bill_to_customer_number": _text(raw, "billToCustomerNumber"),
        "payment_terms_id": normalize_reference(raw.get("paymentTermsId")),
        "shipment_method_id": normalize_reference(raw.get("shipmentMethodId")),
        "salesperson": _text(raw, "salesperson"),
        "phone_number": _text(raw, "phoneNumber"),
        "email": _text(raw, "email"),
    }
    fields.update(_address(raw, "sellTo", "sell_to"))
    fields.update(_address(raw, "billTo", "bill_to"))
    fields.update(_document_totals(raw, warnings))
    return fields


def transform_v2_sales_invoice(raw: Raw, source_tag: str = V2_SOURCE) -> SalesInvoice:
    warnings: List[str] = []
    fields = _sales_header(raw, warnings)
    fields.update(_address(raw, "shipTo", "ship_to"))
    return SalesInvoice(
        id=_require_str(raw, "id", "sales_invoice"),
        invoice_number=_require_str(raw, "number", "sales_invoice"),
        invoice_date=normalize_date(raw.get("invoiceDate"), warnings, "invoice_date"),
        promised_pay_date=normalize_date(raw.get("promisedPayDate"), warnings, "promised_pay_date"),
        customer_purchase_order_reference=_text(raw, "customerPurchaseOrderReference"),
        ship_to_name=_text(raw, "shipToName"),
        ship_to_contact=_text(raw, "shipToContact"),
        remaining_amount=normalize_decimal(raw.get("remainingAmount"), warnings, "remaining_amount"),
        api_source=source_tag,
        warnings=warnings,
        **fields,
    )


def transform_v2_sales_credit_memo(raw: Raw, source_tag: str = V2_SOURCE) -> SalesCreditMemo:
    warnings: List[str] = []
    fields = _sales_header(raw, warnings)
    return SalesCreditMemo(
        id=_require_str(raw, "id", "sales_credit_memo"),
        number=_require_str(raw, "number", "sales_credit_memo"),
        credit_memo_date=normalize_date(raw.get("creditMemoDate"), warnings, "credit_memo_date"),
        invoice_id=normalize_reference(raw.get("invoiceId")),
        invoice_number=_text(raw, "invoiceNumber"),
        customer_return_reason_id=normalize_reference(raw.get("customerReturnReasonId")),
        api_source=source_tag,
        warnings=warnings,
        **fields,
    )


def transform_v2_sales_invoice_line(
    raw: Raw, source_tag: str = V2_SOURCE, parent_key: Optional[str] = None
) -> SalesInvoiceLine:
    warnings: List[str] = []
    return SalesInvoiceLine(
        id=_require_str(raw, "id", "sales_invoice_line"),
        sales_invoice_id=_require_parent(parent_key, "sales_invoice_line", "sales_invoice_id", raw),
        description2=_text(raw, "description2"),
        unit_price=normalize_decimal(raw.get("unitPrice"), warnings, "unit_price"),
        shipment_date=normalize_date(raw.get("shipmentDate"), warnings, "shipment_date"),
        api_source=source_tag,
        warnings=warnings,
        **_line_fields(raw, warnings),
    )


def transform_v2_sales_credit_memo_line(
    raw: Raw, source_tag: str = V2_SOURCE, parent_key: Optional[str] = None
) -> SalesCreditMemoLine:
    warnings: List[str] = []
    return SalesCreditMemoLine(
        id=_require_str(raw, "id", "sales_credit_memo_line"),
        sales_credit_memo_id=_require_parent(parent_key, "sales_credit_memo_line", "sales_credit_memo_id", raw),
        description2=_text(raw, "description2"),
        unit_price=normalize_decimal(raw.get("unitPrice"), warnings, "unit_price"),
        shipment_date=normalize_date(raw.get("shipmentDate"), warnings, "shipment_date"),
        api_source=source_tag,
        warnings=warnings,
        **_line_fields(raw, warnings),
    )


# =============================================================================
# Purchase Documents
# =============================================================================

def _purchase_header(raw: Raw, warnings: List[str]) -> Dict[str, Any]:
    fields = {
        "posting_date": normalize_date(raw.get("postingDate"), warnings, "posting_date"),
        "vendor_id": normalize_reference(raw.get("vendorId")),
        "vendor_number": _text(raw, "vendorNumber"),
        "vendor_name": _text(raw, "vendorName"),
        "pay_to_name": _text(raw, "payToName"),
        "pay_to_vendor_id": normalize_reference(raw.get("payToVendorId")),
        "pay_to_vendor_number": _text(raw, "payToVendorNumber"),
        "purchaser": _text(raw, "purchaser"),
    }
    fields.update(_address(raw, "buyFrom", "buy_from"))
    fields.update(_address(raw, "payTo", "pay_to"))
    fields.update(_document_totals(raw, warnings))
    return fields


def transform_v2_purchase_invoice(raw: Raw, source_tag: str = V2_SOURCE) -> PurchaseInvoice:
    warnings: List[str] = []
    fields = _purchase_header(raw, warnings)
    fields.update(_address(raw, "shipTo", "ship_to"))
    return PurchaseInvoice(
        id=_require_str(raw, "id", "purchase_invoice"),
        number=_require_str(raw, "number", "purchase_invoice"),
        invoice_date=normalize_date(raw.get("invoiceDate"), warnings, "invoice_date"),
        due_date=normalize_date(raw.get("dueDate"), warnings, "due_date"),
        vendor_invoice_number=_text(raw, "vendorInvoiceNumber"),
        pay_to_contact=_text(raw, "payToContact"),
        ship_to_name=_text(raw, "shipToName"),
        ship_to_contact=_text(raw, "shipToContact"),
        order_id=normalize_reference(raw.get("orderId")),
        order_number=_text(raw, "orderNumber"),
        api_source=source_tag,
        warnings=warnings,
        **fields,
    )


def transform_v2_purchase_order(raw: Raw, source_tag: str = V2_SOURCE) -> PurchaseOrder:
    warnings: List[str] = []
    fields = _purchase_header(raw, warnings)
    fields.update(_address(raw, "shipTo", "ship_to"))
    return PurchaseOrder(
        id=_require_str(raw, "id", "purchase_order"),
        number=_require_str(raw, "number", "purchase_order"),
        order_date=normalize_date(raw.get("orderDate"), warnings, "order_date"),
        ship_to_name=_text(raw, "shipToName"),
        ship_to_contact=_text(raw, "shipToContact"),
        shortcut_dimension1_code=_text(raw, "shortcutDimension1Code"),
        shortcut_dimension2_code=_text(raw, "shortcutDimension2Code"),
        payment_terms_id=normalize_reference(raw.get("paymentTermsId")),
        shipment_method_id=normalize_reference(raw.get("shipmentMethodId")),
        requested_receipt_date=normalize_date(raw.get("requestedReceiptDate"), warnings, "requested_receipt_date"),
        fully_received=normalize_bool(raw.get("fullyReceived")),
        api_source=source_tag,
        warnings=warnings,
        **fields,
    )


def transform_v2_purchase_credit_memo(raw: Raw, source_tag: str = V2_SOURCE) -> PurchaseCreditMemo:
    warnings: List[str] = []
    fields = _purchase_header(raw, warnings)
    return PurchaseCreditMemo(
        id=_require_str(raw, "id", "purchase_credit_memo"),
        number=_require_str(raw, "number", "purchase_credit_memo"),
        credit_memo_date=normalize_date(raw.get("creditMemoDate"), warnings, "credit_memo_date"),
        due_date=normalize_date(raw.get("dueDate"), warnings, "due_date"),
        shortcut_dimension1_code=_text(raw, "shortcutDimension1Code"),
        shortcut_dimension2_code=_text(raw, "shortcutDimension2Code"),
        payment_terms_id=normalize_reference(raw.get("paymentTermsId")),
        shipment_method_id=normalize_reference(raw.get("shipmentMethodId")),
        invoice_id=normalize_reference(raw.get("invoiceId")),
        invoice_number=_text(raw, "invoiceNumber"),
        vendor_return_reason_id=normalize_reference(raw.get("vendorReturnReasonId")),
        api_source=source_tag,
        warnings=warnings,
        **fields,
    )


def transform_v2_purchase_invoice_line(
    raw: Raw, source_tag: str = V2_SOURCE, parent_key: Optional[str] = None
) -> PurchaseInvoiceLine:
    warnings: List[str] = []
    return PurchaseInvoiceLine(
        id=_require_str(raw, "id", "purchase_invoice_line"),
        purchase_invoice_id=_require_parent(parent_key, "purchase_invoice_line", "purchase_invoice_id", raw),
        description2=_text(raw, "description2"),
        unit_cost=normalize_decimal(raw.get("unitCost"), warnings, "unit_cost"),
        expected_receipt_date=normalize_date(raw.get("expectedReceiptDate"), warnings, "expected_receipt_date"),
        api_source=source_tag,
        warnings=warnings,
        **_line_fields(raw, warnings),
    )


def transform_v2_purchase_order_line(
    raw: Raw, source_tag: str = V2_SOURCE, parent_key: Optional[str] = None
) -> PurchaseOrderLine:
    warnings: List[str] = []
    return PurchaseOrderLine(
        id=_require_str(raw, "id", "purchase_order_line"),
        purchase_order_id=_require_parent(parent_key, "purchase_order_line", "purchase_order_id", raw),
        description2=_text(raw, "description2"),
        direct_unit_cost=normalize_decimal(raw.get("directUnitCost"), warnings, "direct_unit_cost"),
        expected_receipt_date=normalize_date(raw.get("expectedReceiptDate"), warnings, "expected_receipt_date"),
        received_quantity=normalize_decimal(raw.get("receivedQuantity"), warnings, "received_quantity"),
        invoiced_quantity=normalize_decimal(raw.get("invoicedQuantity"), warnings, "invoiced_quantity"),
        invoice_quantity=normalize_decimal(raw.get("invoiceQuantity"), warnings, "invoice_quantity"),
        receive_quantity=normalize_decimal(raw.get("receiveQuantity"), warnings, "receive_quantity"),
        api_source=source_tag,
        warnings=warnings,
        **_line_fields(raw, warnings),
    )


def transform_v2_purchase_credit_memo_line(
    raw: Raw, source_tag: str = V2_SOURCE, parent_key: Optional[str] = None
) -> PurchaseCreditMemoLine:
    warnings: List[str] = []
    return PurchaseCreditMemoLine(
        id=_require_str(raw, "id", "purchase_credit_memo_line"),
        purchase_credit_memo_id=_require_parent(
            parent_key, "purchase_credit_memo_line", "purchase_credit_memo_id", raw
        ),
        unit_cost=normalize_decimal(raw.get("unitCost"), warnings, "unit_cost"),
        api_source=source_tag,
        warnings=warnings,
        **_line_fields(raw, warnings),
    )


# =============================================================================
# Ledger Entries
# =============================================================================

def transform_v2_general_ledger_entry(raw: Raw, source_tag: str = V2_SOURCE) -> GeneralLedgerEntry:
    warnings: List[str] = []
    return GeneralLedgerEntry(
        entry_number=_require_int(raw, "entryNumber", "general_ledger_entry"),
        id=normalize_text(raw.get("id")),
        posting_date=normalize_date(raw.get("postingDate"), warnings, "posting_date"),
        document_number=_text(raw, "documentNumber"),
        document_type=_text(raw, "documentType"),
        account_id=normalize_reference(raw.get("accountId")),
        account_number=_text(raw, "accountNumber"),
        description=_text(raw, "description"),
        debit_amount=normalize_decimal(raw.get("debitAmount"), warnings, "debit_amount"),
        credit_amount=normalize_decimal(raw.get("creditAmount"), warnings, "credit_amount"),
        additional_currency_debit_amount=normalize_decimal(
            raw.get("additionalCurrencyDebitAmount"), warnings, "additional_currency_debit_amount"
        ),
        additional_currency_credit_amount=normalize_decimal(
            raw.get("additionalCurrencyCreditAmount"), warnings, "additional_currency_credit_amount"
        ),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_tmc_customer_ledger_entry(raw: Raw, source_tag: str = TMC_SOURCE) -> CustomerLedgerEntry:
    warnings: List[str] = []
    return CustomerLedgerEntry(
        entry_no=_require_int(raw, "entryNo", "customer_ledger_entry"),
        posting_date=normalize_date(raw.get("postingDate"), warnings, "posting_date"),
        document_date=normalize_date(raw.get("documentDate"), warnings, "document_date"),
        document_type=_text(raw, "documentType"),
        document_no=_text(raw, "documentNo"),
        description=_text(raw, "description"),
        customer_name=_text(raw, "customerName"),
        customer_no=_text(raw, "customerNo"),
        amount=normalize_decimal(raw.get("amount"), warnings, "amount"),
        amount_lcy=normalize_decimal(raw.get("amountLCY"), warnings, "amount_lcy"),
        debit_amount=normalize_decimal(raw.get("debitAmount"), warnings, "debit_amount"),
        credit_amount=normalize_decimal(raw.get("creditAmount"), warnings, "credit_amount"),
        remaining_amount=normalize_decimal(raw.get("remainingAmount"), warnings, "remaining_amount"),
        remaining_amt_lcy=normalize_decimal(raw.get("remainingAmtLCY"), warnings, "remaining_amt_lcy"),
        due_date=normalize_date(raw.get("dueDate"), warnings, "due_date"),
        open=normalize_bool(raw.get("open")),
        closed_by_entry_no=normalize_entry_reference(raw.get("closedByEntryNo")),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


# =============================================================================
# Custom Integration Entities
# =============================================================================

def transform_tmc_ship_to_address(raw: Raw, source_tag: str = TMC_SOURCE) -> ShipToAddress:
    warnings: List[str] = []
    return ShipToAddress(
        system_id=_require_str(raw, "systemId", "ship_to_address"),
        customer_no=_require_str(raw, "customerNo", "ship_to_address"),
        code=_require_str(raw, "code", "ship_to_address"),
        name=_text(raw, "name"),
        name2=_text(raw, "name2"),
        address=_text(raw, "address"),
        address2=_text(raw, "address2"),
        post_code=_text(raw, "postCode"),
        city=_text(raw, "city"),
        state=_text(raw, "state"),
        country_region_code=_text(raw, "countryRegionCode"),
        email=_text(raw, "eMail"),
        phone_no=_text(raw, "phoneNo"),
        fax_no=_text(raw, "faxNo"),
        contact=_text(raw, "contact"),
        gln=_text(raw, "gln"),
        cissdm_cross_reference_code=_text(raw, "cissdmCrossReferenceCode"),
        cissdm_customer_cost_center_code=_text(raw, "cissdmCustomerCostCenterCode"),
        system_created_at=normalize_datetime(raw.get("SystemCreatedAt"), warnings, "system_created_at"),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_tmc_job(raw: Raw, source_tag: str = TMC_SOURCE) -> Job:
    warnings: List[str] = []
    return Job(
        system_id=_require_str(raw, "systemId", "job"),
        no=_require_str(raw, "no", "job"),
        description=_text(raw, "description"),
        bill_to_customer_no=_text(raw, "billToCustomerNo"),
        status=_text(raw, "status"),
        person_responsible=_text(raw, "personResponsible"),
        next_invoice_date=normalize_date(raw.get("nextInvoiceDate"), warnings, "next_invoice_date"),
        job_posting_group=_text(raw, "jobPostingGroup"),
        search_description=_text(raw, "searchDescription"),
        system_created_at=normalize_datetime(raw.get("SystemCreatedAt"), warnings, "system_created_at"),
        last_modified=normalize_datetime(raw.get("lastModifiedDateTime"), warnings, "last_modified"),
        api_source=source_tag,
        warnings=warnings,
    )


def transform_tmc_billing_schedule_line(raw: Raw, source_tag: str = TMC_SOURCE) -> BillingScheduleLine:
    return BillingScheduleLine(
        billing_schedule_number=_require_str(raw, "BssiArcbBillingScheduleNumber", "billing_schedule_line"),
        line_no=_require_int(raw, "LineNo", "billing_schedule_line"),
        type=_text(raw, "Type_"),
        item_no=_text(raw, "ItemNo"),
        description=_text(raw, "Description"),
        billing_type=_text(raw, "BillingType"),
        ship_to_code=_text(raw, "ShiptoCode"),
        api_source=source_tag,
    )
