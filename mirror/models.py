"""Mirrored entity models.

One pydantic model per mirrored table. Field names are the column names.
Each model declares its table, primary key and (where one exists) the
natural key the store enforces as unique, so the store can upsert any
record generically.

Every record carries `api_source` (which upstream surface produced it) and
a `warnings` list of data corrections made by the transform. Warnings are
excluded from persistence.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Base Model
# =============================================================================

class MirrorRecord(BaseModel):
    """Base model for all mirrored records."""
    model_config = ConfigDict(populate_by_name=True)

    table: ClassVar[str] = ""
    primary_key: ClassVar[Tuple[str, ...]] = ("id", "api_source")
    natural_key: ClassVar[Tuple[str, ...]] = ()
    parent_field: ClassVar[Optional[str]] = None

    api_source: str
    warnings: List[str] = Field(default_factory=list, exclude=True)

    def key(self) -> Tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.primary_key)

    def to_row(self) -> Dict[str, Any]:
        """Column values ready for sqlite (decimals and dates as ISO text)."""
        return self.model_dump(mode="json")


# =============================================================================
# Master Data
# =============================================================================

class Customer(MirrorRecord):
    table: ClassVar[str] = "customer"
    natural_key: ClassVar[Tuple[str, ...]] = ("customer_number", "api_source")

    id: str
    customer_number: str
    display_name: Optional[str] = None
    additional_name: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    balance_due: Optional[Decimal] = None
    credit_limit: Optional[Decimal] = None
    tax_registration_number: Optional[str] = None
    currency_code: Optional[str] = None
    last_modified: Optional[datetime] = None


class Vendor(MirrorRecord):
    table: ClassVar[str] = "vendor"
    natural_key: ClassVar[Tuple[str, ...]] = ("vendor_number", "api_source")

    id: str
    vendor_number: str
    display_name: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    tax_registration_number: Optional[str] = None
    currency_code: Optional[str] = None
    irs1099_code: Optional[str] = None
    payment_terms_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    tax_liable: Optional[bool] = None
    blocked: Optional[str] = None
    balance: Optional[Decimal] = None
    last_modified: Optional[datetime] = None


class Item(MirrorRecord):
    table: ClassVar[str] = "item"
    natural_key: ClassVar[Tuple[str, ...]] = ("item_no", "api_source")

    id: str
    item_no: str
    display_name: Optional[str] = None
    display_name2: Optional[str] = None
    type: Optional[str] = None
    item_category_id: Optional[str] = None
    item_category_code: Optional[str] = None
    blocked: Optional[bool] = None
    gtin: Optional[str] = None
    inventory: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    price_includes_tax: Optional[bool] = None
    unit_cost: Optional[Decimal] = None
    tax_group_id: Optional[str] = None
    tax_group_code: Optional[str] = None
    base_unit_of_measure_id: Optional[str] = None
    base_unit_of_measure_code: Optional[str] = None
    general_product_posting_group_id: Optional[str] = None
    general_product_posting_group_code: Optional[str] = None
    inventory_posting_group_id: Optional[str] = None
    inventory_posting_group_code: Optional[str] = None
    last_modified: Optional[datetime] = None


class Account(MirrorRecord):
    table: ClassVar[str] = "account"
    natural_key: ClassVar[Tuple[str, ...]] = ("number", "api_source")

    id: str
    number: str
    display_name: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    blocked: Optional[bool] = None
    account_type: Optional[str] = None
    direct_posting: Optional[bool] = None
    net_change: Optional[Decimal] = None
    consolidation_translation_method: Optional[str] = None
    consolidation_debit_account: Optional[str] = None
    consolidation_credit_account: Optional[str] = None
    exclude_from_consolidation: Optional[bool] = None
    last_modified: Optional[datetime] = None


class BankAccount(MirrorRecord):
    table: ClassVar[str] = "bank_account"
    natural_key: ClassVar[Tuple[str, ...]] = ("number", "api_source")

    id: str
    number: str
    display_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    blocked: Optional[bool] = None
    currency_code: Optional[str] = None
    currency_id: Optional[str] = None
    iban: Optional[str] = None
    intercompany_enabled: Optional[bool] = None
    last_modified: Optional[datetime] = None


# =============================================================================
# Sales Documents
# =============================================================================

class _SalesDocument(MirrorRecord):
    id: str
    external_document_number: Optional[str] = None
    posting_date: Optional[date] = None
    due_date: Optional[date] = None
    customer_id: Optional[str] = None
    customer_number: Optional[str] = None
    customer_name: Optional[str] = None
    bill_to_name: Optional[str] = None
    bill_to_customer_id: Optional[str] = None
    bill_to_customer_number: Optional[str] = None
    sell_to_address_line1: Optional[str] = None
    sell_to_address_line2: Optional[str] = None
    sell_to_city: Optional[str] = None
    sell_to_state: Optional[str] = None
    sell_to_post_code: Optional[str] = None
    sell_to_country: Optional[str] = None
    bill_to_address_line1: Optional[str] = None
    bill_to_address_line2: Optional[str] = None
    bill_to_city: Optional[str] = None
    bill_to_state: Optional[str] = None
    bill_to_post_code: Optional[str] = None
    bill_to_country: Optional[str] = None
    currency_code: Optional[str] = None
    payment_terms_id: Optional[str] = None
    shipment_method_id: Optional[str] = None
    salesperson: Optional[str] = None
    prices_include_tax: Optional[bool] = None
    discount_amount: Optional[Decimal] = None
    discount_applied_before_tax: Optional[bool] = None
    total_amount_excluding_tax: Optional[Decimal] = None
    total_tax_amount: Optional[Decimal] = None
    total_amount_including_tax: Optional[Decimal] = None
    status: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    last_modified: Optional[datetime] = None


class SalesInvoice(_SalesDocument):
    table: ClassVar[str] = "sales_invoice"
    natural_key: ClassVar[Tuple[str, ...]] = ("invoice_number", "api_source")

    invoice_number: str
    invoice_date: Optional[date] = None
    promised_pay_date: Optional[date] = None
    customer_purchase_order_reference: Optional[str] = None
    ship_to_name: Optional[str] = None
    ship_to_contact: Optional[str] = None
    ship_to_address_line1: Optional[str] = None
    ship_to_address_line2: Optional[str] = None
    ship_to_city: Optional[str] = None
    ship_to_state: Optional[str] = None
    ship_to_post_code: Optional[str] = None
    ship_to_country: Optional[str] = None
    remaining_amount: Optional[Decimal] = None


class SalesCreditMemo(_SalesDocument):
    table: ClassVar[str] = "sales_credit_memo"
    natural_key: ClassVar[Tuple[str, ...]] = ("number", "api_source")

    number: str
    credit_memo_date: Optional[date] = None
    invoice_id: Optional[str] = None
    invoice_number: Optional[str] = None
    customer_return_reason_id: Optional[str] = None


# =============================================================================
# Purchase Documents
# =============================================================================

class _PurchaseDocument(MirrorRecord):
    natural_key: ClassVar[Tuple[str, ...]] = ("number", "api_source")

    id: str
    number: str
    posting_date: Optional[date] = None
    vendor_id: Optional[str] = None
    vendor_number: Optional[str] = None
    vendor_name: Optional[str] = None
    pay_to_name: Optional[str] = None
    pay_to_vendor_id: Optional[str] = None
    pay_to_vendor_number: Optional[str] = None
    buy_from_address_line1: Optional[str] = None
    buy_from_address_line2: Optional[str] = None
    buy_from_city: Optional[str] = None
    buy_from_state: Optional[str] = None
    buy_from_post_code: Optional[str] = None
    buy_from_country: Optional[str] = None
    pay_to_address_line1: Optional[str] = None
    pay_to_address_line2: Optional[str] = None
    pay_to_city: Optional[str] = None
    pay_to_state: Optional[str] = None
    pay_to_post_code: Optional[str] = None
    pay_to_country: Optional[str] = None
    currency_code: Optional[str] = None
    purchaser: Optional[str] = None
    prices_include_tax: Optional[bool] = None
    discount_amount: Optional[Decimal] = None
    discount_applied_before_tax: Optional[bool] = None
    total_amount_excluding_tax: Optional[Decimal] = None
    total_tax_amount: Optional[Decimal] = None
    total_amount_including_tax: Optional[Decimal] = None
    status: Optional[str] = None
    last_modified: Optional[datetime] = None


class PurchaseInvoice(_PurchaseDocument):
    table: ClassVar[str] = "purchase_invoice"

    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    vendor_invoice_number: Optional[str] = None
    pay_to_contact: Optional[str] = None
    ship_to_name: Optional[str] = None
    ship_to_contact: Optional[str] = None
    ship_to_address_line1: Optional[str] = None
    ship_to_address_line2: Optional[str] = None
    ship_to_city: Optional[str] = None
    ship_to_state: Optional[str] = None
    ship_to_post_code: Optional[str] = None
    ship_to_country: Optional[str] = None
    order_id: Optional[str] = None
    order_number: Optional[str] = None


class PurchaseOrder(_PurchaseDocument):
    table: ClassVar[str] = "purchase_order"

    order_date: Optional[date] = None
    ship_to_name: Optional[str] = None
    ship_to_contact: Optional[str] = None
    ship_to_address_line1: Optional[str] = None
    ship_to_address_line2: Optional[str] = None
    ship_to_city: Optional[str] = None
    ship_to_state: Optional[str] = None
    ship_to_post_code: Optional[str] = None
    ship_to_country: Optional[str] = None
    shortcut_dimension1_code: Optional[str] = None
    shortcut_dimension2_code: Optional[str] = None
    payment_terms_id: Optional[str] = None
    shipment_method_id: Optional[str] = None
    requested_receipt_date: Optional[date] = None
    fully_received: Optional[bool] = None


class PurchaseCreditMemo(_PurchaseDocument):
    table: ClassVar[str] = "purchase_credit_memo"

    credit_memo_date: Optional[date] = None
    due_date: Optional[date] = None
    shortcut_dimension1_code: Optional[str] = None
    shortcut_dimension2_code: Optional[str] = None
    payment_terms_id: Optional[str] = None
    shipment_method_id: Optional[str] = None
    invoice_id: Optional[str] = None
    invoice_number: Optional[str] = None
    vendor_return_reason_id: Optional[str] = None


# =============================================================================
# Document Lines
# =============================================================================

class _DocumentLine(MirrorRecord):
    id: str
    sequence: Optional[int] = None
    item_id: Optional[str] = None
    account_id: Optional[str] = None
    line_type: Optional[str] = None
    line_object_number: Optional[str] = None
    description: Optional[str] = None
    unit_of_measure_id: Optional[str] = None
    unit_of_measure_code: Optional[str] = None
    quantity: Optional[Decimal] = None
    discount_amount: Optional[Decimal] = None
    discount_percent: Optional[Decimal] = None
    discount_applied_before_tax: Optional[bool] = None
    amount_excluding_tax: Optional[Decimal] = None
    tax_code: Optional[str] = None
    tax_percent: Optional[Decimal] = None
    total_tax_amount: Optional[Decimal] = None
    amount_including_tax: Optional[Decimal] = None
    invoice_discount_allocation: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
    net_tax_amount: Optional[Decimal] = None
    net_amount_including_tax: Optional[Decimal] = None
    item_variant_id: Optional[str] = None
    location_id: Optional[str] = None


class SalesInvoiceLine(_DocumentLine):
    table: ClassVar[str] = "sales_invoice_line"
    parent_field: ClassVar[Optional[str]] = "sales_invoice_id"

    sales_invoice_id: str
    description2: Optional[str] = None
    unit_price: Optional[Decimal] = None
    shipment_date: Optional[date] = None


class SalesCreditMemoLine(_DocumentLine):
    table: ClassVar[str] = "sales_credit_memo_line"
    parent_field: ClassVar[Optional[str]] = "sales_credit_memo_id"

    sales_credit_memo_id: str
    description2: Optional[str] = None
    unit_price: Optional[Decimal] = None
    shipment_date: Optional[date] = None


class PurchaseInvoiceLine(_DocumentLine):
    table: ClassVar[str] = "purchase_invoice_line"
    parent_field: ClassVar[Optional[str]] = "purchase_invoice_id"

    purchase_invoice_id: str
    description2: Optional[str] = None
    unit_cost: Optional[Decimal] = None
    expected_receipt_date: Optional[date] = None


class PurchaseOrderLine(_DocumentLine):
    table: ClassVar[str] = "purchase_order_line"
    parent_field: ClassVar[Optional[str]] = "purchase_order_id"

    purchase_order_id: str
    description2: Optional[str] = None
    direct_unit_cost: Optional[Decimal] = None
    expected_receipt_date: Optional[date] = None
    received_quantity: Optional[Decimal] = None
    invoiced_quantity: Optional[Decimal] = None
    invoice_quantity: Optional[Decimal] = None
    receive_quantity: Optional[Decimal] = None


class PurchaseCreditMemoLine(_DocumentLine):
    table: ClassVar[str] = "purchase_credit_memo_line"
    parent_field: ClassVar[Optional[str]] = "purchase_credit_memo_id"

    purchase_credit_memo_id: str
    unit_cost: Optional[Decimal] = None


# =============================================================================
# Ledger Entries
# =============================================================================

class GeneralLedgerEntry(MirrorRecord):
    table: ClassVar[str] = "general_ledger_entry"
    primary_key: ClassVar[Tuple[str, ...]] = ("entry_number", "api_source")

    entry_number: int
    id: Optional[str] = None
    posting_date: Optional[date] = None
    document_number: Optional[str] = None
    document_type: Optional[str] = None
    account_id: Optional[str] = None
    account_number: Optional[str] = None
    description: Optional[str] = None
    debit_amount: Optional[Decimal] = None
    credit_amount: Optional[Decimal] = None
    additional_currency_debit_amount: Optional[Decimal] = None
    additional_currency_credit_amount: Optional[Decimal] = None
    last_modified: Optional[datetime] = None


class CustomerLedgerEntry(MirrorRecord):
    table: ClassVar[str] = "customer_ledger_entry"
    primary_key: ClassVar[Tuple[str, ...]] = ("entry_no", "api_source")

    entry_no: int
    posting_date: Optional[date] = None
    document_date: Optional[date] = None
    document_type: Optional[str] = None
    document_no: Optional[str] = None
    description: Optional[str] = None
    customer_name: Optional[str] = None
    customer_no: Optional[str] = None
    amount: Optional[Decimal] = None
    amount_lcy: Optional[Decimal] = None
    debit_amount: Optional[Decimal] = None
    credit_amount: Optional[Decimal] = None
    remaining_amount: Optional[Decimal] = None
    remaining_amt_lcy: Optional[Decimal] = None
    due_date: Optional[date] = None
    open: Optional[bool] = None
    closed_by_entry_no: Optional[int] = None
    last_modified: Optional[datetime] = None


# =============================================================================
# Custom Integration Entities
# =============================================================================

class ShipToAddress(MirrorRecord):
    table: ClassVar[str] = "ship_to_address"
    primary_key: ClassVar[Tuple[str, ...]] = ("system_id", "api_source")
    natural_key: ClassVar[Tuple[str, ...]] = ("customer_no", "code", "api_source")

    system_id: str
    customer_no: str
    code: str
    name: Optional[str] = None
    name2: Optional[str] = None
    address: Optional[str] = None
    address2: Optional[str] = None
    post_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country_region_code: Optional[str] = None
    email: Optional[str] = None
    phone_no: Optional[str] = None
    fax_no: Optional[str] = None
    contact: Optional[str] = None
    gln: Optional[str] = None
    cissdm_cross_reference_code: Optional[str] = None
    cissdm_customer_cost_center_code: Optional[str] = None
    system_created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None


class Job(MirrorRecord):
    table: ClassVar[str] = "job"
    primary_key: ClassVar[Tuple[str, ...]] = ("system_id", "api_source")
    natural_key: ClassVar[Tuple[str, ...]] = ("no", "api_source")

    system_id: str
    no: str
    description: Optional[str] = None
    bill_to_customer_no: Optional[str] = None
    status: Optional[str] = None
    person_responsible: Optional[str] = None
    next_invoice_date: Optional[date] = None
    job_posting_group: Optional[str] = None
    search_description: Optional[str] = None
    system_created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = None


class BillingScheduleLine(MirrorRecord):
    table: ClassVar[str] = "billing_schedule_line"
    primary_key: ClassVar[Tuple[str, ...]] = ("billing_schedule_number", "line_no", "api_source")

    billing_schedule_number: str
    line_no: int
    type: Optional[str] = None
    item_no: Optional[str] = None
    description: Optional[str] = None
    billing_type: Optional[str] = None
    ship_to_code: Optional[str] = None


# =============================================================================
# Registry
# =============================================================================

ALL_MODELS = [
    Customer,
    Vendor,
    Item,
    SalesInvoice,
    SalesInvoiceLine,
    SalesCreditMemo,
    SalesCreditMemoLine,
    PurchaseInvoice,
    PurchaseInvoiceLine,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseCreditMemo,
    PurchaseCreditMemoLine,
    GeneralLedgerEntry,
    CustomerLedgerEntry,
    Account,
    BankAccount,
    ShipToAddress,
    Job,
    BillingScheduleLine,
]

# Document model -> its line model
DOCUMENT_LINES = {
    SalesInvoice: SalesInvoiceLine,
    SalesCreditMemo: SalesCreditMemoLine,
    PurchaseInvoice: PurchaseInvoiceLine,
    PurchaseOrder: PurchaseOrderLine,
    PurchaseCreditMemo: PurchaseCreditMemoLine,
}
