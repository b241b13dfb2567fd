"""
Tests for payment batches: draft → approved → processing → completed.
"""
import pytest
from datetime import date
from decimal import Decimal

from core_backend.exceptions import ConflictError, ValidationError
from expenses.models import PaymentMethod
from payables.models import BatchStatus, LedgerLine, LedgerSource, PaymentBatch
from payables.services import APInvoiceService, PaymentBatchService, PaymentRequest, invoice_balance


def posted(vendor, number, amount):
    invoice = APInvoiceService.create_invoice(
        vendor.id, number, date(2024, 6, 3),
        lines=[{'raw_description': 'Produce', 'line_total': amount}],
    )
    APInvoiceService.approve(invoice.id)
    return APInvoiceService.post(invoice.id)


@pytest.fixture
def invoices(vendor):
    return [posted(vendor, 'INV-1', '100.00'), posted(vendor, 'INV-2', '250.00')]


@pytest.fixture
def approved_batch(invoices):
    batch = PaymentBatchService.create_batch(
        [PaymentRequest(invoices[0].id, Decimal('100.00')), PaymentRequest(invoices[1].id, Decimal('200.00'))],
        batch_date=date(2024, 6, 20),
    )
    return PaymentBatchService.approve(batch.id)


@pytest.mark.django_db
class TestCreateBatch:

    def test_batch_number_and_total(self, approved_batch):
        assert approved_batch.batch_number == 'PAY-20240620-1'
        assert approved_batch.total_amount == Decimal('300.00')

    def test_partial_payment_leaves_balance(self, approved_batch, invoices):
        assert invoice_balance(invoices[1]) == Decimal('50.00')

    def test_overpayment_rejected(self, invoices):
        with pytest.raises(ValidationError):
            PaymentBatchService.create_batch([PaymentRequest(invoices[0].id, Decimal('100.01'))])
        assert PaymentBatch.objects.count() == 0

    def test_unposted_invoice_rejected(self, vendor):
        draft = APInvoiceService.create_invoice(
            vendor.id, 'INV-9', date(2024, 6, 3), lines=[{'raw_description': 'x', 'line_total': '10'}],
        )
        with pytest.raises(ConflictError):
            PaymentBatchService.create_batch([PaymentRequest(draft.id, Decimal('10'))])


@pytest.mark.django_db
class TestProcessBatch:

    def test_sequential_check_numbers(self, approved_batch, engine_config):
        batch = PaymentBatchService.process(approved_batch.id, check_start_number=1001, config=engine_config)

        assert batch.status == BatchStatus.COMPLETED
        assert list(batch.items.order_by('id').values_list('check_number', flat=True)) == [1001, 1002]

    def test_payment_ledger_lines(self, approved_batch, engine_config):
        PaymentBatchService.process(approved_batch.id, check_start_number=1001, config=engine_config)

        lines = LedgerLine.objects.filter(source=LedgerSource.PAYMENT)
        assert lines.count() == 4
        assert sum(line.debit for line in lines if line.account_code == '2000') == Decimal('300.00')
        assert sum(line.credit for line in lines if line.account_code == '1000') == Decimal('300.00')

    def test_cannot_process_twice(self, approved_batch):
        PaymentBatchService.process(approved_batch.id, check_start_number=1001)

        with pytest.raises(ConflictError):
            PaymentBatchService.process(approved_batch.id, check_start_number=2001)
        assert LedgerLine.objects.filter(source=LedgerSource.PAYMENT).count() == 4

    def test_draft_cannot_be_processed(self, invoices):
        batch = PaymentBatchService.create_batch([PaymentRequest(invoices[0].id, Decimal('50'))])

        with pytest.raises(ConflictError):
            PaymentBatchService.process(batch.id, check_start_number=1)

    def test_check_batch_needs_start_number(self, approved_batch):
        with pytest.raises(ValidationError):
            PaymentBatchService.process(approved_batch.id)

        approved_batch.refresh_from_db()
        assert approved_batch.status == BatchStatus.APPROVED

    def test_bank_transfer_batch_has_no_check_numbers(self, invoices):
        batch = PaymentBatchService.create_batch(
            [PaymentRequest(invoices[0].id, Decimal('100'))], payment_method=PaymentMethod.BANK_TRANSFER,
        )
        PaymentBatchService.approve(batch.id)

        batch = PaymentBatchService.process(batch.id)

        assert batch.items.get().check_number is None


@pytest.mark.django_db
class TestDeleteBatch:

    def test_delete_draft(self, invoices):
        batch = PaymentBatchService.create_batch([PaymentRequest(invoices[0].id, Decimal('50'))])

        PaymentBatchService.delete(batch.id)

        assert not PaymentBatch.objects.filter(pk=batch.id).exists()
        assert invoice_balance(invoices[0]) == Decimal('100.00')

    def test_delete_approved_conflicts(self, approved_batch):
        with pytest.raises(ConflictError):
            PaymentBatchService.delete(approved_batch.id)
