"""
Database models for the HMS billing backend.

Two groups of models live here.  The clinical records (patients, visits,
prescriptions, lab orders and the catalogues they reference) are owned by
the wider hospital system; billing only reads them.  The billing records
(bills, their lines and payments) are owned by this application and are
written exclusively through :mod:`billing.services`.
"""
from __future__ import annotations

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Staff user with a single role.

    Roles mirror the hospital desks that touch billing: 'billing',
    'admin', 'doctor', 'receptionist' and 'super'.
    """
    ROLE_CHOICES = [
        ('billing', 'Billing'),
        ('admin', 'Administrator'),
        ('doctor', 'Doctor'),
        ('receptionist', 'Receptionist'),
        ('super', 'Super Administrator'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default='receptionist')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


# ---------------------------------------------------------------------------
# Clinical records consumed by billing
# ---------------------------------------------------------------------------

class Patient(models.Model):
    name = models.CharField(max_length=255)
    mobile = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Visit(models.Model):
    """One arrival of a patient at the hospital.  At most one bill per visit."""
    VISIT_TYPE_CHOICES = [
        ('OPD', 'Outpatient'),
        ('EMERGENCY', 'Emergency'),
        ('FOLLOW_UP', 'Follow-up'),
    ]
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='visits')
    visit_type = models.CharField(max_length=16, choices=VISIT_TYPE_CHOICES, default='OPD')
    arrived_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Visit {self.id} ({self.patient_id})"


class Medicine(models.Model):
    """Pharmacy catalogue entry.  ``mrp`` is the tax-inclusive sticker price."""
    GST_CATEGORY_CHOICES = [
        ('ESSENTIAL_MEDICINE', 'Essential medicine (5%)'),
        ('MEDICINE', 'General medicine (12%)'),
    ]
    name = models.CharField(max_length=255)
    generic_name = models.CharField(max_length=255, blank=True)
    strength = models.CharField(max_length=64, blank=True)
    mrp = models.DecimalField(max_digits=12, decimal_places=2)
    gst_category = models.CharField(max_length=32, choices=GST_CATEGORY_CHOICES, default='MEDICINE')

    def __str__(self) -> str:
        return f"{self.name} {self.strength}".strip()


class LabTest(models.Model):
    """Lab catalogue entry.  ``price`` is the pre-tax service price."""
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=64, blank=True)
    price = models.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self) -> str:
        return self.name


class Prescription(models.Model):
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='prescriptions')
    doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"Rx {self.id} for visit {self.visit_id}"


class PrescriptionItem(models.Model):
    prescription = models.ForeignKey(Prescription, on_delete=models.CASCADE, related_name='items')
    medicine = models.ForeignKey(Medicine, on_delete=models.PROTECT, related_name='prescription_items')
    quantity = models.PositiveIntegerField(default=1)
    # only dispensed items reach a bill
    dispensed = models.BooleanField(default=False, db_index=True)

    def __str__(self) -> str:
        return f"{self.medicine} x{self.quantity}"


class LabOrder(models.Model):
    STATUS_PENDING = 'PENDING'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    visit = models.ForeignKey(Visit, on_delete=models.CASCADE, related_name='lab_orders')
    test = models.ForeignKey(LabTest, on_delete=models.PROTECT, related_name='orders')
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.test} ({self.status})"


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------

class Bill(models.Model):
    """A generated bill for a visit.

    ``bill_number`` and ``visit`` are both uniquely constrained; the
    constraints, not the service-level checks, are what guarantee one bill
    per visit and no duplicate numbers under concurrent generation.  Only
    ``balance``, ``status`` and ``paid_at`` change after creation.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_PARTIAL = 'PARTIAL'
    STATUS_PAID = 'PAID'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_PARTIAL, 'Partially paid'),
        (STATUS_PAID, 'Paid'),
    ]

    visit = models.ForeignKey(Visit, on_delete=models.PROTECT, related_name='bills')
    bill_number = models.CharField(max_length=32, unique=True)
    sequence = models.PositiveIntegerField()
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    generated_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='bills_generated'
    )
    generated_at = models.DateTimeField(auto_now_add=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['visit'], name='uq_bill_visit'),
        ]
        indexes = [
            models.Index(fields=['status', 'generated_at'], name='bill_status_generated_idx'),
        ]

    def __str__(self) -> str:
        return self.bill_number


class BillItem(models.Model):
    """A persisted bill line.

    ``item_id`` points back at the prescription item or lab order the line
    was built from.  It is a lookup key for traceability only.
    """
    TYPE_CONSULTATION = 'CONSULTATION'
    TYPE_MEDICINE = 'MEDICINE'
    TYPE_LAB_TEST = 'LAB_TEST'
    TYPE_CHOICES = [
        (TYPE_CONSULTATION, 'Consultation'),
        (TYPE_MEDICINE, 'Medicine'),
        (TYPE_LAB_TEST, 'Lab test'),
    ]

    bill = models.ForeignKey(Bill, on_delete=models.CASCADE, related_name='items')
    position = models.PositiveIntegerField(default=0)
    item_type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    item_id = models.CharField(max_length=64, blank=True)
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    is_tax_inclusive = models.BooleanField()
    tax_rate = models.DecimalField(max_digits=5, decimal_places=4)
    base_amount = models.DecimalField(max_digits=12, decimal_places=2)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ['position', 'id']

    def __str__(self) -> str:
        return f"{self.description} x{self.quantity}"


class Payment(models.Model):
    MODE_CASH = 'CASH'
    MODE_CARD = 'CARD'
    MODE_UPI = 'UPI'
    MODE_CHOICES = [
        (MODE_CASH, 'Cash'),
        (MODE_CARD, 'Card'),
        (MODE_UPI, 'UPI'),
    ]
    STATUS_SUCCESS = 'SUCCESS'
    STATUS_FAILED = 'FAILED'
    STATUS_CHOICES = [
        (STATUS_SUCCESS, 'Success'),
        (STATUS_FAILED, 'Failed'),
    ]

    bill = models.ForeignKey(Bill, on_delete=models.PROTECT, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    mode = models.CharField(max_length=16, choices=MODE_CHOICES)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SUCCESS)
    transaction_id = models.CharField(max_length=64, blank=True)
    upi_id = models.CharField(max_length=64, blank=True)
    card_last4 = models.CharField(max_length=4, blank=True)
    recorded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='payments_recorded'
    )
    recorded_at = models.DateTimeField(auto_now_add=True)
    remarks = models.TextField(blank=True)

    class Meta:
        indexes = [
            models.Index(fields=['bill', 'recorded_at'], name='payment_bill_recorded_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.mode} {self.amount} for {self.bill_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]
