"""
API tests for the billing endpoints.

These exercise the HTTP surface with DRF's ``APIClient``: role checks,
request validation, the unified error envelope and the camelCase payloads
returned to the billing desk.

To run the tests:

```
pytest -q billing/tests
```
"""
from decimal import Decimal

from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient, APITestCase

from ..models import Bill, LabOrder, LabTest, Medicine, Patient, Prescription, PrescriptionItem, User, Visit


class BillingAPITests(APITestCase):
    def setUp(self) -> None:
        self.billing_user = User.objects.create_user(username='billing1', password='P@ssw0rd1', role='billing')
        self.doctor = User.objects.create_user(username='doctor1', password='P@ssw0rd1', role='doctor')
        self.receptionist = User.objects.create_user(username='reception1', password='P@ssw0rd1', role='receptionist')
        self.super_user = User.objects.create_user(username='super', password='P@ssw0rd1', role='super')

        self.patient = Patient.objects.create(name='Anita Sharma', mobile='9812345678')
        self.visit = Visit.objects.create(patient=self.patient)
        medicine = Medicine.objects.create(name='Azithromycin', strength='500mg', mrp=Decimal('100.00'))
        test = LabTest.objects.create(name='Lipid Profile', price=Decimal('500.00'))
        rx = Prescription.objects.create(visit=self.visit, doctor=self.doctor)
        PrescriptionItem.objects.create(prescription=rx, medicine=medicine, quantity=15, dispensed=True)
        LabOrder.objects.create(visit=self.visit, test=test, status=LabOrder.STATUS_COMPLETED)
        self.empty_visit = Visit.objects.create(patient=self.patient)

    def authenticate(self, user: User) -> APIClient:
        """Return an authenticated APIClient for the given user."""
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def generate(self, user=None):
        return self.authenticate(user or self.billing_user).post(
            '/api/billing/generate', {'visitId': self.visit.id}, format='json'
        )

    def test_generate_returns_bill(self):
        response = self.generate()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data = response.data['data']
        self.assertTrue(response.data['ok'])
        self.assertEqual(data['visitId'], self.visit.id)
        self.assertEqual(data['patientName'], 'Anita Sharma')
        self.assertEqual(data['total'], Decimal('2444.00'))
        self.assertEqual(data['generatedBy'], self.billing_user.id)
        self.assertEqual(len(data['items']), 3)
        self.assertEqual(data['items'][0]['description'], 'Doctor Consultation Fee')

    def test_second_generation_conflicts_with_bill_number(self):
        first = self.generate()
        response = self.generate()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['ok'])
        self.assertEqual(response.data['error']['code'], 'already_exists')
        self.assertEqual(response.data['error']['billNumber'], first.data['data']['billNumber'])

    def test_generate_empty_visit_is_unprocessable(self):
        client = self.authenticate(self.billing_user)
        response = client.post('/api/billing/generate', {'visitId': self.empty_visit.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data['error']['code'], 'nothing_to_bill')

    def test_generate_unknown_visit_is_not_found(self):
        client = self.authenticate(self.billing_user)
        response = client.post('/api/billing/generate', {'visitId': 99999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['code'], 'not_found')

    def test_generate_validates_payload(self):
        client = self.authenticate(self.billing_user)
        response = client.post('/api/billing/generate', {'visitId': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['ok'])

    def test_role_checks(self):
        self.assertEqual(self.generate(self.doctor).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.generate(self.receptionist).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.generate(self.super_user).status_code, status.HTTP_201_CREATED)

        bill_id = Bill.objects.get(visit=self.visit).id
        doctor = self.authenticate(self.doctor)
        self.assertEqual(doctor.get(f'/api/billing/preview/{self.visit.id}').status_code, status.HTTP_200_OK)
        self.assertEqual(doctor.get(f'/api/billing/visit/{self.visit.id}').status_code, status.HTTP_200_OK)
        self.assertEqual(doctor.get(f'/api/billing/{bill_id}').status_code, status.HTTP_403_FORBIDDEN)
        reception = self.authenticate(self.receptionist)
        self.assertEqual(reception.get(f'/api/billing/{bill_id}').status_code, status.HTTP_200_OK)
        self.assertEqual(reception.get(f'/api/billing/preview/{self.visit.id}').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(reception.get('/api/billing/payment/outstanding').status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_requests_are_rejected(self):
        response = APIClient().get(f'/api/billing/preview/{self.visit.id}')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_token_header_authenticates(self):
        token = Token.objects.create(user=self.billing_user)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
        response = client.get(f'/api/billing/preview/{self.visit.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_preview_empty_visit_is_zero(self):
        client = self.authenticate(self.billing_user)
        response = client.get(f'/api/billing/preview/{self.empty_visit.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['items'], [])
        self.assertEqual(response.data['data']['total'], 0)

    def test_lookup_by_number_with_slashes(self):
        number = self.generate().data['data']['billNumber']
        client = self.authenticate(self.receptionist)
        response = client.get(f'/api/billing/number/{number}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['billNumber'], number)

    def test_bills_for_visit(self):
        client = self.authenticate(self.billing_user)
        self.assertEqual(client.get(f'/api/billing/visit/{self.visit.id}').data['data'], [])
        self.generate()
        response = client.get(f'/api/billing/visit/{self.visit.id}')
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(client.get('/api/billing/visit/99999').status_code, status.HTTP_404_NOT_FOUND)

    def test_gst_split(self):
        bill_id = self.generate().data['data']['id']
        client = self.authenticate(self.billing_user)
        intra = client.get(f'/api/billing/{bill_id}/gst').data['data']
        self.assertFalse(intra['interState'])
        self.assertEqual(intra['cgst'], Decimal('152.33'))
        self.assertEqual(intra['sgst'], Decimal('152.33'))
        inter = client.get(f'/api/billing/{bill_id}/gst', {'interState': 'true'}).data['data']
        self.assertTrue(inter['interState'])
        self.assertEqual(inter['igst'], Decimal('304.65'))

    def test_payment_flow(self):
        bill_id = self.generate().data['data']['id']
        client = self.authenticate(self.receptionist)
        response = client.post('/api/billing/payment/record',
                               {'billingId': bill_id, 'amount': '1000.00', 'mode': 'CASH'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['data']['billStatus']['status'], 'PARTIAL')
        payment_id = response.data['data']['payment']['id']

        self.assertEqual(client.get(f'/api/billing/payment/{payment_id}').data['data']['amount'], Decimal('1000.00'))
        self.assertEqual(len(client.get(f'/api/billing/payment/bill/{bill_id}').data['data']), 1)
        summary = client.get(f'/api/billing/payment/summary/{bill_id}').data['data']
        self.assertEqual(summary['balance'], Decimal('1444.00'))

        outstanding = self.authenticate(self.billing_user).get('/api/billing/payment/outstanding').data
        self.assertEqual(outstanding['total'], 1)

    def test_payment_validation(self):
        bill_id = self.generate().data['data']['id']
        client = self.authenticate(self.receptionist)
        response = client.post('/api/billing/payment/record',
                               {'billingId': bill_id, 'amount': '100', 'mode': 'UPI'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post('/api/billing/payment/record',
                               {'billingId': bill_id, 'amount': '5000', 'mode': 'CASH'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'invalid_input')
        self.assertIn('exceeds outstanding balance', response.data['error']['message'])

    def test_healthz(self):
        response = self.client.get('/healthz')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['db'])
