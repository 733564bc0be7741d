from decimal import Decimal

import pytest

from billing.models import (
    User, Patient, Visit, Medicine, LabTest, Prescription, PrescriptionItem, LabOrder
)


@pytest.fixture
def make_user(db):
    def _make(role, username=None):
        return User.objects.create_user(username=username or f'{role}_user', password='P@ssw0rd1', role=role)
    return _make


@pytest.fixture
def patient(db):
    return Patient.objects.create(name='Ravi Kumar', mobile='9876543210')


@pytest.fixture
def make_visit(patient):
    def _make():
        return Visit.objects.create(patient=patient)
    return _make


@pytest.fixture
def paracetamol(db):
    return Medicine.objects.create(
        name='Paracetamol', strength='500mg', mrp=Decimal('100.00'), gst_category='MEDICINE'
    )


@pytest.fixture
def cbc(db):
    return LabTest.objects.create(name='Complete Blood Count', category='Hematology', price=Decimal('500.00'))


@pytest.fixture
def billable_visit(make_visit, paracetamol, cbc):
    """Visit producing the mixed bill: 15 x MRP 100 @12%, lab 500 @18%, consultation 300 @18%."""
    visit = make_visit()
    rx = Prescription.objects.create(visit=visit)
    PrescriptionItem.objects.create(prescription=rx, medicine=paracetamol, quantity=15, dispensed=True)
    LabOrder.objects.create(visit=visit, test=cbc, status=LabOrder.STATUS_COMPLETED)
    return visit
