"""
Django admin registrations for the billing models.

Bills and payments are shown read-only: their figures are produced by
the billing services and must not be edited by hand.
"""

from django.contrib import admin

from .models import (
    User,
    Patient,
    Visit,
    Medicine,
    LabTest,
    Prescription,
    PrescriptionItem,
    LabOrder,
    Bill,
    BillItem,
    Payment,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'mobile', 'created_at')
    search_fields = ('name', 'mobile')


@admin.register(Visit)
class VisitAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'visit_type', 'arrived_at')
    list_filter = ('visit_type',)


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ('name', 'strength', 'mrp', 'gst_category')
    list_filter = ('gst_category',)
    search_fields = ('name', 'generic_name')


@admin.register(LabTest)
class LabTestAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price')
    search_fields = ('name',)


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'visit', 'doctor', 'created_at')
    inlines = [PrescriptionItemInline]


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'visit', 'test', 'status', 'created_at')
    list_filter = ('status',)


class BillItemInline(admin.TabularInline):
    model = BillItem
    extra = 0
    can_delete = False
    readonly_fields = (
        'position', 'item_type', 'item_id', 'description', 'quantity', 'unit_price', 'amount',
        'is_tax_inclusive', 'tax_rate', 'base_amount', 'tax_amount', 'total',
    )


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ('bill_number', 'visit', 'total', 'balance', 'status', 'generated_at')
    list_filter = ('status',)
    search_fields = ('bill_number',)
    readonly_fields = (
        'visit', 'bill_number', 'sequence', 'subtotal', 'tax_amount', 'discount', 'total',
        'balance', 'status', 'generated_by', 'generated_at', 'paid_at',
    )
    inlines = [BillItemInline]


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'bill', 'amount', 'mode', 'status', 'recorded_at')
    list_filter = ('mode', 'status')
    readonly_fields = ('bill', 'amount', 'mode', 'status', 'transaction_id', 'upi_id',
                       'card_last4', 'recorded_by', 'recorded_at', 'remarks')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action',)
