from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from core_backend.exceptions import ConflictError
from expenses.models import MappableLine, PaymentMethod


class InvoiceStatus(models.TextChoices):
    DRAFT = "draft", _("Draft")
    APPROVED = "approved", _("Approved")
    POSTED = "posted", _("Posted")
    REJECTED = "rejected", _("Rejected")


class MappingStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PARTIAL = "partial", _("Partially mapped")
    COMPLETE = "complete", _("Complete")


class BatchStatus(models.TextChoices):
    DRAFT = "draft", _("Draft")
    APPROVED = "approved", _("Approved")
    PROCESSING = "processing", _("Processing")
    COMPLETED = "completed", _("Completed")


class LedgerSource(models.TextChoices):
    AP_INVOICE = "ap_invoice", _("AP invoice posting")
    PAYMENT = "payment", _("Payment")


class APInvoice(models.Model):
    """
    A vendor invoice moving through draft → approved → posted.

    ``posted`` is terminal: once stored as posted the row cannot be saved
    again or deleted. Rejected invoices are likewise closed for edits.
    """
    vendor = models.ForeignKey(
        'cogs.Vendor',
        on_delete=models.PROTECT,
        related_name='ap_invoices'
    )
    invoice_number = models.CharField(max_length=100)
    invoice_date = models.DateField()
    due_date = models.DateField(null=True, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.DRAFT
    )
    mapping_status = models.CharField(
        max_length=20,
        choices=MappingStatus.choices,
        default=MappingStatus.PENDING
    )
    notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    posted_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("AP Invoice")
        verbose_name_plural = _("AP Invoices")
        ordering = ['-invoice_date', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['vendor', 'invoice_number'],
                name='unique_invoice_number_per_vendor'
            ),
        ]
        indexes = [
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.vendor} #{self.invoice_number} ({self.status})"

    def _stored_status(self):
        if self._state.adding or self.pk is None:
            return None
        return APInvoice.objects.filter(pk=self.pk).values_list('status', flat=True).first()

    def save(self, *args, **kwargs):
        if self._stored_status() == InvoiceStatus.POSTED:
            raise ConflictError(
                f"Invoice {self.invoice_number} is posted and cannot be modified",
                current_status=InvoiceStatus.POSTED,
            )
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        if self._stored_status() == InvoiceStatus.POSTED:
            raise ConflictError(
                f"Invoice {self.invoice_number} is posted and cannot be deleted",
                current_status=InvoiceStatus.POSTED,
            )
        return super().delete(using=using, keep_parents=keep_parents)


class APInvoiceLine(MappableLine):
    invoice = models.ForeignKey(
        APInvoice,
        on_delete=models.CASCADE,
        related_name='lines'
    )

    class Meta(MappableLine.Meta):
        verbose_name = _("AP Invoice Line")
        verbose_name_plural = _("AP Invoice Lines")
        ordering = ['invoice', 'line_number', 'id']

    def __str__(self):
        return f"{self.raw_vendor_code or '-'} {self.raw_description}: {self.line_total}"

    def _check_invoice_open(self, action):
        status = APInvoice.objects.filter(pk=self.invoice_id).values_list('status', flat=True).first()
        if status == InvoiceStatus.POSTED:
            raise ConflictError(
                f"Lines of posted invoice {self.invoice_id} cannot be {action}",
                current_status=InvoiceStatus.POSTED,
            )

    def save(self, *args, **kwargs):
        self._check_invoice_open("modified")
        super().save(*args, **kwargs)

    def delete(self, using=None, keep_parents=False):
        self._check_invoice_open("deleted")
        return super().delete(using=using, keep_parents=keep_parents)


class PaymentBatch(models.Model):
    """
    A run of vendor payments: draft → approved → processing → completed.

    Only draft batches can be deleted; a completed batch is never processed again.
    """
    batch_number = models.CharField(max_length=40, unique=True)
    batch_date = models.DateField()
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.CHECK
    )
    status = models.CharField(
        max_length=20,
        choices=BatchStatus.choices,
        default=BatchStatus.DRAFT
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    check_start_number = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment Batch")
        verbose_name_plural = _("Payment Batches")
        ordering = ['-batch_date', '-id']

    def __str__(self):
        return f"{self.batch_number} ({self.status})"

    def delete(self, using=None, keep_parents=False):
        if self.status != BatchStatus.DRAFT:
            raise ConflictError(
                f"Payment batch {self.batch_number} is {self.status}; only draft batches can be deleted",
                current_status=self.status,
            )
        return super().delete(using=using, keep_parents=keep_parents)


class PaymentBatchItem(models.Model):
    batch = models.ForeignKey(
        PaymentBatch,
        on_delete=models.CASCADE,
        related_name='items'
    )
    invoice = models.ForeignKey(
        APInvoice,
        on_delete=models.PROTECT,
        related_name='payment_items'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    check_number = models.PositiveIntegerField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Payment Batch Item")
        verbose_name_plural = _("Payment Batch Items")
        ordering = ['batch', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name='payment_item_amount_positive'
            ),
        ]

    def __str__(self):
        return f"{self.batch.batch_number}: {self.invoice} {self.amount}"


class LedgerLine(models.Model):
    """
    A generated debit or credit for the external journal to post.

    Written in the same transaction as the invoice posting or batch
    processing that produced it.
    """
    entry_date = models.DateField()
    account_code = models.CharField(max_length=20)
    debit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    credit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    description = models.CharField(max_length=300)
    source = models.CharField(max_length=20, choices=LedgerSource.choices)
    invoice = models.ForeignKey(
        APInvoice,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='ledger_lines'
    )
    batch_item = models.ForeignKey(
        PaymentBatchItem,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name='ledger_lines'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Ledger Line")
        verbose_name_plural = _("Ledger Lines")
        ordering = ['entry_date', 'id']

    def __str__(self):
        return f"{self.entry_date} {self.account_code} DR {self.debit} CR {self.credit}"
