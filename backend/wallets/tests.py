import threading
from decimal import Decimal
from unittest.mock import patch

from django.db import connection
from django.test import TestCase, TransactionTestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from services import ledger
from services.exceptions import (
	AccountNotFoundError,
	InsufficientFundsError,
	ProviderError,
	ServiceValidationError,
)
from .models import Wallet, WalletTransaction
from .views import WalletCreditView, WalletDebitView, WalletDiscountView, WalletView


class LedgerTests(TestCase):
	def setUp(self):
		self.rider = User.objects.create_user(
			username='rider',
			password='pass1234',
			role='user',
			phone_number='9000000000'
		)
		self.wallet = Wallet.objects.create(user=self.rider)

	def test_credit_then_debit(self):
		self.assertEqual(ledger.credit(self.rider, '100.50'), Decimal('100.50'))
		self.assertEqual(ledger.debit(self.rider, 30, 'Snacks'), Decimal('70.50'))

		kinds = list(WalletTransaction.objects.values_list('kind', flat=True))
		self.assertEqual(kinds, ['debit', 'credit'])

	def test_overdraft_is_refused_and_nothing_recorded(self):
		ledger.credit(self.rider, 70)

		with self.assertRaises(InsufficientFundsError) as ctx:
			ledger.debit(self.rider, 100, 'Too much')

		self.assertEqual(ctx.exception.details['balance'], '70.00')
		self.wallet.refresh_from_db()
		self.assertEqual(self.wallet.balance, Decimal('70'))
		self.assertEqual(WalletTransaction.objects.filter(kind='debit').count(), 0)

	def test_debit_can_empty_wallet(self):
		ledger.credit(self.rider, 50)

		self.assertEqual(ledger.debit(self.rider, 50, 'All of it'), Decimal('0'))

	def test_amounts_are_validated(self):
		for amount in (0, -5, 'abc', '10.005', float('nan')):
			with self.assertRaises(ServiceValidationError):
				ledger.credit(self.rider, amount)
		self.assertFalse(WalletTransaction.objects.exists())

	def test_missing_wallet(self):
		other = User.objects.create_user(username='other', password='pass1234', role='user')

		with self.assertRaises(AccountNotFoundError):
			ledger.debit(other, 10, 'Nothing there')

	def test_summary_lists_newest_first(self):
		ledger.credit(self.rider, 200, method='razorpay', external_transaction_id='rzp_1')
		ledger.debit(self.rider, 40, 'Ride payment')

		summary = ledger.get_summary(self.rider, limit=1)

		self.assertEqual(summary['balance'], Decimal('160'))
		self.assertEqual(len(summary['transactions']), 1)
		self.assertEqual(summary['transactions'][0].kind, 'debit')


class WalletViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.rider = User.objects.create_user(
			username='rider',
			password='pass1234',
			role='user',
			phone_number='9000000000'
		)
		self.driver = User.objects.create_user(
			username='driver',
			password='driver1234',
			role='driver',
			phone_number='9000000001'
		)

	def test_wallet_is_created_on_first_view(self):
		request = self.factory.get('/api/wallet/')
		force_authenticate(request, user=self.rider)
		response = WalletView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(Decimal(response.data['balance']), Decimal('0'))
		self.assertTrue(Wallet.objects.filter(user=self.rider).exists())

	def test_drivers_have_no_wallet(self):
		request = self.factory.get('/api/wallet/')
		force_authenticate(request, user=self.driver)
		response = WalletView.as_view()(request)

		self.assertEqual(response.status_code, 403)

	def test_credit_through_gateway(self):
		request = self.factory.post('/api/wallet/credit/', {
			'amount': '500',
			'payment_method': 'razorpay',
		}, format='json')
		force_authenticate(request, user=self.rider)
		response = WalletCreditView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['balance'], Decimal('500'))
		self.assertTrue(response.data['transaction_id'].startswith('rzp_'))
		txn = WalletTransaction.objects.get()
		self.assertEqual(txn.payment_method, 'razorpay')
		self.assertEqual(txn.external_transaction_id, response.data['transaction_id'])

	@patch('wallets.views.charge', side_effect=ProviderError('phonepe payment failed'))
	def test_failed_gateway_credits_nothing(self, mock_charge):
		request = self.factory.post('/api/wallet/credit/', {
			'amount': '500',
			'payment_method': 'phonepe',
		}, format='json')
		force_authenticate(request, user=self.rider)
		response = WalletCreditView.as_view()(request)

		self.assertEqual(response.status_code, 502)
		self.assertEqual(Wallet.objects.get(user=self.rider).balance, Decimal('0'))

	def test_debit_view_insufficient_funds(self):
		Wallet.objects.create(user=self.rider, balance=Decimal('20'))
		request = self.factory.post('/api/wallet/debit/', {
			'amount': '50',
			'description': 'Ride payment',
		}, format='json')
		force_authenticate(request, user=self.rider)
		response = WalletDebitView.as_view()(request)

		self.assertEqual(response.status_code, 402)
		self.assertEqual(response.data['error'], 'InsufficientFunds')

	def test_discount_preview(self):
		request = self.factory.get('/api/wallet/discount/', {'amount': '250'})
		force_authenticate(request, user=self.rider)
		response = WalletDiscountView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		# 12.5 rounds half up
		self.assertEqual(response.data['discount'], Decimal('13'))
		self.assertEqual(response.data['final_amount'], Decimal('237'))
		self.assertEqual(response.data['discount_percentage'], 5)


class ConcurrentDebitTests(TransactionTestCase):
	def setUp(self):
		self.rider = User.objects.create_user(
			username='rider',
			password='pass1234',
			role='user',
			phone_number='9000000000'
		)
		self.wallet = Wallet.objects.create(user=self.rider, balance=Decimal('100'))

	def test_balance_never_goes_negative(self):
		debits = 5
		barrier = threading.Barrier(debits)
		paid, refused, failures = [], [], []

		def debit():
			try:
				barrier.wait()
				paid.append(ledger.debit(self.rider, '30', 'Ride payment'))
			except InsufficientFundsError:
				refused.append(True)
			except Exception as exc:
				failures.append(exc)
			finally:
				connection.close()

		threads = [threading.Thread(target=debit) for _ in range(debits)]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		self.assertEqual(failures, [])
		self.assertEqual(len(paid), 3)
		self.assertEqual(len(refused), 2)
		self.wallet.refresh_from_db()
		self.assertEqual(self.wallet.balance, Decimal('10'))
		self.assertEqual(self.wallet.transactions.filter(kind='debit').count(), 3)
