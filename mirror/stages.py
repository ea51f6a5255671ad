"""Stage descriptors: the ordered list of entity syncs.

Each stage names an entity, the upstream bindings that feed it (fetch +
transform per API surface), the upsert target and, for documents, the child
line stage. The orchestrator runs these generically in list order, so
parents always precede their lines and new entities are added here rather
than in orchestration code.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Type

from connectors.business_central.tmc_api import TmcApiAdapter
from connectors.business_central.v2_api import V2ApiAdapter
from mirror import transforms
from mirror.models import (
    Account,
    BankAccount,
    BillingScheduleLine,
    Customer,
    CustomerLedgerEntry,
    GeneralLedgerEntry,
    Item,
    Job,
    MirrorRecord,
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
from mirror.store import MirrorStore

Raw = Dict[str, Any]
FetchFn = Callable[[Optional[datetime]], AsyncIterator[Raw]]
LineFetchFn = Callable[[str], AsyncIterator[Raw]]
TransformFn = Callable[..., MirrorRecord]
UpsertFn = Callable[[MirrorRecord], None]
ReplaceLinesFn = Callable[[str, str, List[MirrorRecord]], int]


@dataclass
class SourceBinding:
    """One upstream feed for a stage."""
    source: str
    fetch: FetchFn
    transform: TransformFn


@dataclass
class ChildStage:
    """Lines fetched per parent document after the parent is stored."""
    entity_name: str
    model: Type[MirrorRecord]
    fetch_lines: LineFetchFn
    transform: TransformFn
    # (parent_key, source, lines) -> lines removed; all-or-nothing
    replace_lines: ReplaceLinesFn


@dataclass
class StageDescriptor:
    entity_name: str
    model: Type[MirrorRecord]
    bindings: List[SourceBinding]
    upsert: UpsertFn
    child: Optional[ChildStage] = None
    # False for feeds without a modification timestamp: always read in full
    incremental: bool = True
    sources: List[str] = field(init=False)

    def __post_init__(self):
        self.sources = [b.source for b in self.bindings]


def _lines(
    store: MirrorStore,
    entity_name: str,
    model: Type[MirrorRecord],
    fetch_lines: LineFetchFn,
    transform: TransformFn,
) -> ChildStage:
    return ChildStage(
        entity_name=entity_name,
        model=model,
        fetch_lines=fetch_lines,
        transform=transform,
        replace_lines=lambda parent_key, source, lines: store.replace_lines(model, parent_key, source, lines),
    )


def build_stages(
    v2: V2ApiAdapter,
    tmc: TmcApiAdapter,
    store: MirrorStore,
    include_custom_customers: bool = False,
) -> List[StageDescriptor]:
    """Build the ordered stage list for one sync run."""
    v2_source = v2.source
    tmc_source = tmc.source

    customer_bindings = [SourceBinding(v2_source, v2.customers, transforms.transform_v2_customer)]
    if include_custom_customers:
        customer_bindings.append(SourceBinding(tmc_source, tmc.customers, transforms.transform_tmc_customer))

    return [
        StageDescriptor("customers", Customer, customer_bindings, store.upsert),
        StageDescriptor(
            "vendors", Vendor,
            [SourceBinding(v2_source, v2.vendors, transforms.transform_v2_vendor)],
            store.upsert,
        ),
        StageDescriptor(
            "items", Item,
            [SourceBinding(v2_source, v2.items, transforms.transform_v2_item)],
            store.upsert,
        ),
        StageDescriptor(
            "sales_invoices", SalesInvoice,
            [SourceBinding(v2_source, v2.sales_invoices, transforms.transform_v2_sales_invoice)],
            store.upsert,
            child=_lines(
                store, "sales_invoice_lines", SalesInvoiceLine,
                v2.sales_invoice_lines, transforms.transform_v2_sales_invoice_line,
            ),
        ),
        StageDescriptor(
            "sales_credit_memos", SalesCreditMemo,
            [SourceBinding(v2_source, v2.sales_credit_memos, transforms.transform_v2_sales_credit_memo)],
            store.upsert,
            child=_lines(
                store, "sales_credit_memo_lines", SalesCreditMemoLine,
                v2.sales_credit_memo_lines, transforms.transform_v2_sales_credit_memo_line,
            ),
        ),
        StageDescriptor(
            "purchase_invoices", PurchaseInvoice,
            [SourceBinding(v2_source, v2.purchase_invoices, transforms.transform_v2_purchase_invoice)],
            store.upsert,
            child=_lines(
                store, "purchase_invoice_lines", PurchaseInvoiceLine,
                v2.purchase_invoice_lines, transforms.transform_v2_purchase_invoice_line,
            ),
        ),
        StageDescriptor(
            "purchase_orders", PurchaseOrder,
            [SourceBinding(v2_source, v2.purchase_orders, transforms.transform_v2_purchase_order)],
            store.upsert,
            child=_lines(
                store, "purchase_order_lines", PurchaseOrderLine,
                v2.purchase_order_lines, transforms.transform_v2_purchase_order_line,
            ),
        ),
        StageDescriptor(
            "purchase_credit_memos", PurchaseCreditMemo,
            [SourceBinding(v2_source, v2.purchase_credit_memos, transforms.transform_v2_purchase_credit_memo)],
            store.upsert,
            child=_lines(
                store, "purchase_credit_memo_lines", PurchaseCreditMemoLine,
                v2.purchase_credit_memo_lines, transforms.transform_v2_purchase_credit_memo_line,
            ),
        ),
        StageDescriptor(
            "general_ledger_entries", GeneralLedgerEntry,
            [SourceBinding(v2_source, v2.general_ledger_entries, transforms.transform_v2_general_ledger_entry)],
            store.upsert,
        ),
        StageDescriptor(
            "customer_ledger_entries", CustomerLedgerEntry,
            [SourceBinding(tmc_source, tmc.customer_ledger_entries, transforms.transform_tmc_customer_ledger_entry)],
            store.upsert,
        ),
        StageDescriptor(
            "accounts", Account,
            [SourceBinding(v2_source, v2.accounts, transforms.transform_v2_account)],
            store.upsert,
        ),
        StageDescriptor(
            "bank_accounts", BankAccount,
            [SourceBinding(v2_source, v2.bank_accounts, transforms.transform_v2_bank_account)],
            store.upsert,
        ),
        StageDescriptor(
            "ship_to_addresses", ShipToAddress,
            [SourceBinding(tmc_source, tmc.ship_to_addresses, transforms.transform_tmc_ship_to_address)],
            store.upsert,
        ),
        StageDescriptor(
            "jobs", Job,
            [SourceBinding(tmc_source, tmc.jobs, transforms.transform_tmc_job)],
            store.upsert,
        ),
        StageDescriptor(
            "billing_schedule_lines", BillingScheduleLine,
            [SourceBinding(tmc_source, tmc.billing_schedule_lines, transforms.transform_tmc_billing_schedule_line)],
            store.upsert,
            incremental=False,
        ),
    ]
