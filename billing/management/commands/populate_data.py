"""
Management command to populate the database with billing test data.
"""
import random
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from billing.models import (
    User, Patient, Visit, Medicine, LabTest, Prescription, PrescriptionItem, LabOrder
)

MEDICINES = [
    # name, generic, strength, mrp, gst category
    ("Paracetamol", "Paracetamol", "500mg", "50.00", "ESSENTIAL_MEDICINE"),
    ("Amoxicillin", "Amoxicillin", "250mg", "120.00", "ESSENTIAL_MEDICINE"),
    ("Azithromycin", "Azithromycin", "500mg", "185.50", "MEDICINE"),
    ("Pantoprazole", "Pantoprazole", "40mg", "99.00", "MEDICINE"),
    ("Cetirizine", "Cetirizine", "10mg", "35.00", "MEDICINE"),
    ("Metformin", "Metformin", "500mg", "42.75", "ESSENTIAL_MEDICINE"),
]

LAB_TESTS = [
    ("Complete Blood Count", "Hematology", "500.00"),
    ("Lipid Profile", "Biochemistry", "800.00"),
    ("Blood Sugar (Fasting)", "Biochemistry", "150.00"),
    ("Urine Routine", "Pathology", "200.00"),
    ("Thyroid Profile", "Endocrinology", "650.00"),
]

PATIENTS = [
    ("Ravi Kumar", "9876543210"),
    ("Anita Sharma", "9812345678"),
    ("Suresh Iyer", "9898989898"),
    ("Meena Pillai", "9123456780"),
    ("Arjun Reddy", "9000012345"),
]


class Command(BaseCommand):
    help = 'Populate database with billing test data'

    def add_arguments(self, parser):
        parser.add_argument('--seed', type=int, default=None, help='random seed for repeatable data')

    @transaction.atomic
    def handle(self, *args, **options):
        rng = random.Random(options['seed'])
        self.stdout.write('Creating test data...')

        medicines = self.create_medicines()
        lab_tests = self.create_lab_tests()
        doctor = self.get_doctor()

        visits = 0
        for name, mobile in PATIENTS:
            patient, _ = Patient.objects.get_or_create(name=name, defaults={'mobile': mobile})
            visit = Visit.objects.create(patient=patient, visit_type=rng.choice(['OPD', 'OPD', 'FOLLOW_UP']))
            self.create_prescription(visit, doctor, medicines, rng)
            self.create_lab_orders(visit, lab_tests, rng)
            visits += 1

        # a visit with no clinical activity, for the nothing-to-bill path
        Visit.objects.create(patient=Patient.objects.order_by('id').first(), visit_type='OPD')

        self.stdout.write(self.style.SUCCESS(
            f'Done: {len(medicines)} medicines, {len(lab_tests)} lab tests, {visits + 1} visits'
        ))

    def create_medicines(self):
        medicines = []
        for name, generic, strength, mrp, category in MEDICINES:
            med, _ = Medicine.objects.get_or_create(
                name=name, strength=strength,
                defaults={'generic_name': generic, 'mrp': Decimal(mrp), 'gst_category': category},
            )
            medicines.append(med)
        return medicines

    def create_lab_tests(self):
        tests = []
        for name, category, price in LAB_TESTS:
            test, _ = LabTest.objects.get_or_create(name=name, defaults={'category': category, 'price': Decimal(price)})
            tests.append(test)
        return tests

    def get_doctor(self):
        doctor, _ = User.objects.get_or_create(username='doctor1', defaults={'role': 'doctor'})
        return doctor

    def create_prescription(self, visit, doctor, medicines, rng):
        rx = Prescription.objects.create(visit=visit, doctor=doctor)
        for med in rng.sample(medicines, k=rng.randint(1, 3)):
            PrescriptionItem.objects.create(
                prescription=rx,
                medicine=med,
                quantity=rng.randint(1, 5),
                dispensed=rng.random() < 0.7,
            )

    def create_lab_orders(self, visit, lab_tests, rng):
        for test in rng.sample(lab_tests, k=rng.randint(0, 2)):
            LabOrder.objects.create(
                visit=visit,
                test=test,
                status=rng.choice([LabOrder.STATUS_COMPLETED, LabOrder.STATUS_COMPLETED, LabOrder.STATUS_PENDING]),
            )
