"""
URL mappings for the billing API.

Trailing slashes are deliberately omitted.  ``payment/...`` and the other
literal prefixes are declared before the ``<int:bill_id>`` routes.  Bill
numbers contain slashes, hence the ``path`` converter on the lookup by
number.
"""
from django.urls import path

from .views import bills, health, payments

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),

    path('api/billing/generate', bills.bill_generate, name='bill_generate'),
    path('api/billing/preview/<int:visit_id>', bills.bill_preview, name='bill_preview'),
    path('api/billing/visit/<int:visit_id>', bills.bills_for_visit, name='bills_for_visit'),
    path('api/billing/number/<path:bill_number>', bills.bill_by_number, name='bill_by_number'),

    path('api/billing/payment/record', payments.payment_record, name='payment_record'),
    path('api/billing/payment/outstanding', payments.outstanding_bills, name='outstanding_bills'),
    path('api/billing/payment/summary/<int:bill_id>', payments.payment_summary, name='payment_summary'),
    path('api/billing/payment/bill/<int:bill_id>', payments.payments_for_bill, name='payments_for_bill'),
    path('api/billing/payment/<int:payment_id>', payments.payment_detail, name='payment_detail'),

    path('api/billing/<int:bill_id>', bills.bill_detail, name='bill_detail'),
    path('api/billing/<int:bill_id>/gst', bills.bill_gst_split, name='bill_gst_split'),
]
