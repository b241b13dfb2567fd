"""
Accounts payable workflows.

Invoice:        draft → approved → posted        (draft/approved → rejected)
Payment batch:  draft → approved → processing → completed   (draft → deleted)

Every transition runs in one transaction with the affected rows locked.
Posting an invoice and processing a batch write their ledger lines in the
same transaction, so either the whole effect lands or none of it does.
Transition violations raise ConflictError.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from cogs.models import Vendor
from core_backend.config import EngineConfig, get_engine_config
from core_backend.exceptions import ConflictError, NotFoundError, ValidationError
from core_backend.utils.money import ZERO, quantize_money, to_decimal
from expenses.models import PaymentMethod
from expenses.services.mapping_service import MappingBatchResult, MappingService, mapping_status
from payables.models import (
    APInvoice,
    APInvoiceLine,
    BatchStatus,
    InvoiceStatus,
    LedgerLine,
    LedgerSource,
    PaymentBatch,
    PaymentBatchItem,
)

logger = logging.getLogger(__name__)


EDITABLE_INVOICE_FIELDS = {'invoice_number', 'invoice_date', 'due_date', 'total_amount', 'notes'}


@dataclass(frozen=True)
class PaymentRequest:
    invoice_id: int
    amount: Decimal


def _lock_invoice(invoice_id: int) -> APInvoice:
    try:
        return APInvoice.objects.select_for_update().get(pk=invoice_id)
    except APInvoice.DoesNotExist:
        raise NotFoundError("APInvoice", invoice_id)


def _lock_batch(batch_id: int) -> PaymentBatch:
    try:
        return PaymentBatch.objects.select_for_update().get(pk=batch_id)
    except PaymentBatch.DoesNotExist:
        raise NotFoundError("PaymentBatch", batch_id)


def invoice_balance(invoice: APInvoice) -> Decimal:
    """Invoice total less everything already committed to payment batches."""
    committed = PaymentBatchItem.objects.filter(invoice=invoice).aggregate(total=Sum('amount'))['total'] or ZERO
    return invoice.total_amount - committed


class APInvoiceService:
    """Service layer for vendor invoices."""

    @staticmethod
    @transaction.atomic
    def create_invoice(
        vendor_id: int,
        invoice_number: str,
        invoice_date: date,
        lines: Iterable[dict],
        due_date: Optional[date] = None,
        notes: str = "",
    ) -> APInvoice:
        """
        Create a draft invoice with its lines.

        Each line dict needs ``raw_description`` and ``line_total`` and may carry
        ``raw_vendor_code``, ``quantity``, ``unit`` and ``unit_price``.
        The invoice total is the sum of line totals.
        """
        if not Vendor.objects.filter(pk=vendor_id).exists():
            raise NotFoundError("Vendor", vendor_id)
        lines = list(lines)
        if not lines:
            raise ValidationError("An invoice needs at least one line", field="lines")

        total = ZERO
        for data in lines:
            line_total = to_decimal(data.get('line_total', 0))
            if line_total < 0:
                raise ValidationError("Line totals cannot be negative", field="line_total")
            total += line_total

        invoice = APInvoice.objects.create(
            vendor_id=vendor_id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            due_date=due_date,
            total_amount=quantize_money(total),
            notes=notes,
        )
        for number, data in enumerate(lines, start=1):
            APInvoiceLine.objects.create(
                invoice=invoice,
                line_number=number,
                raw_vendor_code=data.get('raw_vendor_code', ''),
                raw_description=data['raw_description'],
                quantity=to_decimal(data.get('quantity', 1)),
                unit=data.get('unit', ''),
                unit_price=to_decimal(data.get('unit_price', 0)),
                line_total=quantize_money(data['line_total']),
            )
        logger.info(f"Created AP invoice {invoice.id} ({invoice_number}) for vendor {vendor_id}: {invoice.total_amount}")
        return invoice

    @staticmethod
    @transaction.atomic
    def update_invoice(invoice_id: int, **changes) -> APInvoice:
        invoice = _lock_invoice(invoice_id)
        if invoice.status == InvoiceStatus.POSTED:
            raise ConflictError(f"Invoice {invoice.invoice_number} is posted and cannot be modified",
                                current_status=invoice.status)
        if invoice.status == InvoiceStatus.REJECTED:
            raise ConflictError(f"Invoice {invoice.invoice_number} was rejected and cannot be modified",
                                current_status=invoice.status)

        unknown = set(changes) - EDITABLE_INVOICE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(invoice, name, value)
        invoice.save()
        return invoice

    @staticmethod
    @transaction.atomic
    def delete_invoice(invoice_id: int) -> None:
        invoice = _lock_invoice(invoice_id)
        if invoice.payment_items.exists():
            raise ConflictError(f"Invoice {invoice.invoice_number} is part of a payment batch",
                                current_status=invoice.status)
        invoice.delete()

    @staticmethod
    @transaction.atomic
    def apply_mappings(invoice_id: int, config: Optional[EngineConfig] = None) -> MappingBatchResult:
        """Auto-map an invoice's lines with its vendor's rules and refresh ``mapping_status``."""
        invoice = _lock_invoice(invoice_id)
        if invoice.status == InvoiceStatus.POSTED:
            raise ConflictError(f"Invoice {invoice.invoice_number} is posted; its lines cannot be remapped",
                                current_status=invoice.status)

        lines = list(APInvoiceLine.objects.select_for_update().filter(invoice=invoice).order_by('line_number', 'id'))
        result = MappingService.apply_to_lines(lines, lambda line: invoice.vendor_id, config)

        invoice.mapping_status = mapping_status(lines)
        invoice.save(update_fields=['mapping_status', 'updated_at'])
        logger.info(
            f"Invoice {invoice.id} lines mapped: {result.applied} of {result.total}, "
            f"status {invoice.mapping_status}"
        )
        return result

    @staticmethod
    @transaction.atomic
    def approve(invoice_id: int) -> APInvoice:
        invoice = _lock_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT:
            raise ConflictError(
                f"Only draft invoices can be approved; invoice {invoice.invoice_number} is {invoice.status}",
                current_status=invoice.status,
            )
        invoice.status = InvoiceStatus.APPROVED
        invoice.approved_at = timezone.now()
        invoice.save()
        logger.info(f"Approved AP invoice {invoice.id}")
        return invoice

    @staticmethod
    @transaction.atomic
    def reject(invoice_id: int, reason: str = "") -> APInvoice:
        invoice = _lock_invoice(invoice_id)
        if invoice.status not in (InvoiceStatus.DRAFT, InvoiceStatus.APPROVED):
            raise ConflictError(
                f"Invoice {invoice.invoice_number} is {invoice.status} and cannot be rejected",
                current_status=invoice.status,
            )
        invoice.status = InvoiceStatus.REJECTED
        invoice.rejected_at = timezone.now()
        invoice.rejection_reason = reason
        invoice.save()
        logger.info(f"Rejected AP invoice {invoice.id}: {reason}")
        return invoice

    @staticmethod
    def posting_lines(invoice: APInvoice, config: EngineConfig) -> List[dict]:
        """
        Debit per account, credit accounts payable for the total.

        Ingredient lines debit inventory, category lines debit the category's
        account, anything else the default expense account.
        """
        accounts = config.ledger_accounts
        totals: "OrderedDict[str, Decimal]" = OrderedDict()
        for line in invoice.lines.select_related('mapped_category').order_by('line_number', 'id'):
            if line.mapped_ingredient_id is not None:
                account = accounts.inventory
            elif line.mapped_category is not None and line.mapped_category.account_code:
                account = line.mapped_category.account_code
            else:
                account = accounts.default_expense
            totals[account] = totals.get(account, ZERO) + line.line_total

        description = f"{invoice.vendor.name} invoice {invoice.invoice_number}"
        entries = [
            {"account_code": account, "debit": quantize_money(amount), "credit": ZERO, "description": description}
            for account, amount in totals.items()
        ]
        entries.append({
            "account_code": accounts.accounts_payable,
            "debit": ZERO,
            "credit": quantize_money(sum(totals.values(), ZERO)),
            "description": description,
        })
        return entries

    @staticmethod
    @transaction.atomic
    def post(invoice_id: int, config: Optional[EngineConfig] = None) -> APInvoice:
        """
        Post an approved invoice and write its ledger lines.

        Raises:
            ConflictError: if the invoice is not approved (including already posted)
            ValidationError: if line totals do not match the invoice total
        """
        config = get_engine_config(config)
        invoice = _lock_invoice(invoice_id)
        if invoice.status != InvoiceStatus.APPROVED:
            raise ConflictError(
                f"Only approved invoices can be posted; invoice {invoice.invoice_number} is {invoice.status}",
                current_status=invoice.status,
            )

        entries = APInvoiceService.posting_lines(invoice, config)
        credited = entries[-1]["credit"]
        if credited != invoice.total_amount:
            raise ValidationError(
                f"Invoice {invoice.invoice_number} lines total {credited} but invoice total is {invoice.total_amount}",
                field="total_amount",
            )

        LedgerLine.objects.bulk_create([
            LedgerLine(
                entry_date=invoice.invoice_date,
                source=LedgerSource.AP_INVOICE,
                invoice=invoice,
                **entry,
            )
            for entry in entries
        ])

        invoice.status = InvoiceStatus.POSTED
        invoice.posted_at = timezone.now()
        invoice.save()
        logger.info(f"Posted AP invoice {invoice.id}: {len(entries)} ledger line(s), {credited}")
        return invoice


class PaymentBatchService:
    """Service layer for vendor payment batches."""

    @staticmethod
    def next_batch_number(batch_date: date) -> str:
        prefix = f"PAY-{batch_date:%Y%m%d}-"
        count = PaymentBatch.objects.filter(batch_number__startswith=prefix).count()
        return f"{prefix}{count + 1}"

    @staticmethod
    @transaction.atomic
    def create_batch(
        payments: Iterable[PaymentRequest],
        batch_date: Optional[date] = None,
        payment_method: str = PaymentMethod.CHECK,
        notes: str = "",
    ) -> PaymentBatch:
        """
        Create a draft batch paying posted invoices.

        Raises:
            ValidationError: empty batch, non-positive amount, or amount above the open balance
            ConflictError: paying an invoice that is not posted
            NotFoundError: unknown invoice
        """
        payments = list(payments)
        if not payments:
            raise ValidationError("A payment batch needs at least one payment", field="items")
        if payment_method not in PaymentMethod.values:
            raise ValidationError(f"Unknown payment method: {payment_method}", field="payment_method")
        batch_date = batch_date or timezone.localdate()

        batch = PaymentBatch.objects.create(
            batch_number=PaymentBatchService.next_batch_number(batch_date),
            batch_date=batch_date,
            payment_method=payment_method,
            notes=notes,
        )

        total = ZERO
        for payment in payments:
            amount = quantize_money(payment.amount)
            if amount <= 0:
                raise ValidationError("Payment amounts must be positive", field="amount")
            invoice = _lock_invoice(payment.invoice_id)
            if invoice.status != InvoiceStatus.POSTED:
                raise ConflictError(
                    f"Invoice {invoice.invoice_number} is {invoice.status}; only posted invoices can be paid",
                    current_status=invoice.status,
                )
            balance = invoice_balance(invoice)
            if amount > balance:
                raise ValidationError(
                    f"Payment {amount} exceeds open balance {balance} for invoice {invoice.invoice_number}",
                    field="amount",
                )
            PaymentBatchItem.objects.create(batch=batch, invoice=invoice, amount=amount)
            total += amount

        batch.total_amount = total
        batch.save(update_fields=['total_amount'])
        logger.info(f"Created payment batch {batch.batch_number}: {len(payments)} payment(s), {total}")
        return batch

    @staticmethod
    @transaction.atomic
    def approve(batch_id: int) -> PaymentBatch:
        batch = _lock_batch(batch_id)
        if batch.status != BatchStatus.DRAFT:
            raise ConflictError(
                f"Only draft batches can be approved; {batch.batch_number} is {batch.status}",
                current_status=batch.status,
            )
        batch.status = BatchStatus.APPROVED
        batch.approved_at = timezone.now()
        batch.save(update_fields=['status', 'approved_at'])
        logger.info(f"Approved payment batch {batch.batch_number}")
        return batch

    @staticmethod
    @transaction.atomic
    def delete(batch_id: int) -> None:
        batch = _lock_batch(batch_id)
        batch.delete()
        logger.info(f"Deleted draft payment batch {batch.batch_number}")

    @staticmethod
    @transaction.atomic
    def process(
        batch_id: int,
        check_start_number: Optional[int] = None,
        config: Optional[EngineConfig] = None,
    ) -> PaymentBatch:
        """
        Pay every item in an approved batch.

        Check batches number their items sequentially from ``check_start_number``.
        Each item writes DR accounts payable / CR cash.

        Raises:
            ConflictError: if the batch is not approved (a completed batch is never re-run)
            ValidationError: if a check batch has no usable starting number
        """
        config = get_engine_config(config)
        batch = _lock_batch(batch_id)
        if batch.status != BatchStatus.APPROVED:
            raise ConflictError(
                f"Only approved batches can be processed; {batch.batch_number} is {batch.status}",
                current_status=batch.status,
            )
        is_check = batch.payment_method == PaymentMethod.CHECK
        if is_check and (check_start_number is None or check_start_number <= 0):
            raise ValidationError("Check batches need a positive check_start_number", field="check_start_number")

        batch.status = BatchStatus.PROCESSING
        batch.check_start_number = check_start_number if is_check else None
        batch.save(update_fields=['status', 'check_start_number'])

        accounts = config.ledger_accounts
        now = timezone.now()
        check_number = check_start_number
        items = batch.items.select_related('invoice', 'invoice__vendor').select_for_update().order_by('id')

        for item in items:
            if item.invoice.status != InvoiceStatus.POSTED:
                raise ConflictError(
                    f"Invoice {item.invoice.invoice_number} is no longer posted",
                    current_status=item.invoice.status,
                )
            if is_check:
                item.check_number = check_number
                check_number += 1
            item.paid_at = now
            item.save(update_fields=['check_number', 'paid_at'])

            description = f"Payment to {item.invoice.vendor.name} - {item.invoice.invoice_number}"
            LedgerLine.objects.bulk_create([
                LedgerLine(entry_date=batch.batch_date, account_code=accounts.accounts_payable,
                           debit=item.amount, credit=ZERO, description=description,
                           source=LedgerSource.PAYMENT, batch_item=item),
                LedgerLine(entry_date=batch.batch_date, account_code=accounts.cash,
                           debit=ZERO, credit=item.amount, description=description,
                           source=LedgerSource.PAYMENT, batch_item=item),
            ])

        batch.status = BatchStatus.COMPLETED
        batch.processed_at = now
        batch.save(update_fields=['status', 'processed_at'])
        logger.info(f"Processed payment batch {batch.batch_number}: {batch.total_amount}")
        return batch
