from decimal import Decimal

from django.contrib.admin.sites import AdminSite
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from drivers.models import DriverProfile
from wallets.models import Wallet
from .admin import AccountAdmin
from .models import User
from .views import LoginView, RefreshTokenView, RegisterView


class RegistrationTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()

	def _register(self, **data):
		request = self.factory.post('/api/auth/register/', data, format='json')
		return RegisterView.as_view()(request)

	def _refresh(self, **data):
		request = self.factory.post('/api/auth/refresh/', data, format='json')
		return RefreshTokenView.as_view()(request)

	def test_rider_gets_wallet_and_tokens(self):
		response = self._register(username='asha', password='secret123', role='user', phone_number='9000000000')

		self.assertEqual(response.status_code, 201)
		self.assertIn('access', response.data['tokens'])
		user = User.objects.get(username='asha')
		self.assertTrue(Wallet.objects.filter(user=user).exists())
		self.assertFalse(DriverProfile.objects.filter(user=user).exists())

	def test_driver_gets_profile(self):
		response = self._register(
			username='ravi',
			password='secret123',
			role='driver',
			vehicle_number='KA-01-1234',
			vehicle_class='auto',
		)

		self.assertEqual(response.status_code, 201)
		profile = DriverProfile.objects.get(user__username='ravi')
		self.assertEqual(profile.vehicle_class, 'auto')
		self.assertEqual(profile.status, 'inactive')
		self.assertFalse(Wallet.objects.filter(user=profile.user).exists())

	def test_driver_without_vehicle_is_rejected(self):
		response = self._register(username='ravi', password='secret123', role='driver')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'ValidationError')
		self.assertIn('vehicle_number', response.data['details'])
		self.assertFalse(User.objects.filter(username='ravi').exists())

	def test_login(self):
		User.objects.create_user(username='asha', password='secret123', role='user')
		request = self.factory.post('/api/auth/login/', {'username': 'asha', 'password': 'secret123'}, format='json')
		response = LoginView.as_view()(request)

		self.assertEqual(response.status_code, 200)

	def test_refresh_issues_access_token(self):
		tokens = self._register(username='asha', password='secret123', role='user').data['tokens']

		response = self._refresh(refresh=tokens['refresh'])

		self.assertEqual(response.status_code, 200)
		self.assertIn('access', response.data)

	def test_garbage_refresh_token_is_unauthorized(self):
		response = self._refresh(refresh='not-a-token')

		self.assertEqual(response.status_code, 401)
		self.assertEqual(response.data['error'], 'Unauthorized')
		self.assertTrue(response.data['message'])

	def test_missing_refresh_token(self):
		response = self._refresh()

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'ValidationError')


class AccountAdminTests(TestCase):
	def setUp(self):
		self.admin = AccountAdmin(User, AdminSite())

	def test_rider_columns_show_wallet(self):
		rider = User.objects.create_user(username='asha', password='secret123', role='user')
		Wallet.objects.create(user=rider, balance=Decimal('250.00'))
		rider = User.objects.get(pk=rider.pk)

		self.assertEqual(self.admin.wallet_balance(rider), Decimal('250.00'))
		self.assertEqual(self.admin.vehicle(rider), '-')
		self.assertEqual(self.admin.duty_status(rider), '-')

	def test_driver_columns_show_vehicle_and_status(self):
		driver = User.objects.create_user(username='ravi', password='secret123', role='driver')
		DriverProfile.objects.create(user=driver, vehicle_number='KA-01-1234', vehicle_class='moto', status='active')
		driver = User.objects.get(pk=driver.pk)

		self.assertEqual(self.admin.vehicle(driver), 'KA-01-1234 (Moto)')
		self.assertEqual(self.admin.duty_status(driver), 'Active')
		self.assertEqual(self.admin.wallet_balance(driver), '-')
