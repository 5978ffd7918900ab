import threading
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import caches
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from drivers.models import DriverProfile
from services import ride_management
from services.exceptions import (
	DriverNotAvailableError,
	InsufficientFundsError,
	InvalidOtpError,
	InvalidTransitionError,
	PermissionDeniedError,
	ProviderError,
	RideUnavailableError,
	ServiceValidationError,
)
from services.matching import broadcast_ride_available, dispatch_ride, find_eligible
from services.payments.gateways import ChargeResult
from services.ride_management import registry
from services.routing import Coordinates, GeocodeNotFoundError, RouteEstimate
from realtime.presence import get_presence
from wallets.models import Wallet
from .models import Ride, RideOffer
from . import views


class FakeRouting:
	def __init__(self, distance=10, duration=20, coords=None, error=None):
		self.distance = distance
		self.duration = duration
		self.coords = coords
		self.error = error

	def get_distance_time(self, origin, destination):
		if self.error:
			raise self.error
		return RouteEstimate(self.distance, self.duration)

	def geocode(self, location):
		if self.coords is None:
			raise GeocodeNotFoundError()
		return Coordinates(*self.coords)


def make_rider(username='rider', balance=None):
	rider = User.objects.create_user(
		username=username,
		password='pass1234',
		role='user',
		phone_number='9000000000'
	)
	if balance is not None:
		Wallet.objects.create(user=rider, balance=Decimal(balance))
	return rider


def make_driver(username, vehicle_number, vehicle_class='car', status='active', lat=None, lng=None):
	driver = User.objects.create_user(
		username=username,
		password='driver1234',
		role='driver',
		phone_number='9100000000'
	)
	DriverProfile.objects.create(
		user=driver,
		vehicle_number=vehicle_number,
		vehicle_class=vehicle_class,
		status=status,
		current_latitude=lat,
		current_longitude=lng
	)
	return driver


def make_ride(rider, fare='200', wallet_linked=False, vehicle_class='car', pickup='Connaught Place'):
	return registry.create(
		rider=rider,
		pickup=pickup,
		destination='India Gate',
		vehicle_class=vehicle_class,
		fare=Decimal(fare),
		otp='123456',
		wallet_linked=wallet_linked,
	)


def make_ongoing_ride(rider, driver, **kwargs):
	ride = make_ride(rider, **kwargs)
	registry.claim_if_pending(ride.id, driver)
	return registry.advance_if_status(ride.id, Ride.ACCEPTED, Ride.ONGOING, started_at=timezone.now())


def open_channel(account_id):
	layer = get_channel_layer()
	channel = async_to_sync(layer.new_channel)()
	get_presence().set_handle(account_id, channel)
	return channel


def next_event(channel):
	message = async_to_sync(get_channel_layer().receive)(channel)
	return message['event'], message['data']


class RideCreationTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.rider = make_rider()

	def test_create_ride_prices_requested_class(self):
		result = ride_management.create_ride(
			self.rider, 'Connaught Place', 'India Gate', 'car', routing=FakeRouting(10, 20)
		)

		ride = Ride.objects.get(pk=result.ride.id)
		self.assertEqual(ride.status, Ride.PENDING)
		self.assertIsNone(ride.driver)
		self.assertEqual(ride.fare, Decimal('260'))
		self.assertEqual(ride.payment_status, 'pending')
		self.assertEqual(len(ride.otp), 6)
		self.assertTrue(ride.otp.isdigit())
		self.assertFalse(result.extra['fallback_route'])

	def test_create_ride_uses_fallback_route_when_provider_fails(self):
		result = ride_management.create_ride(
			self.rider, 'Nowhere', 'Elsewhere', 'auto', routing=FakeRouting(error=ProviderError())
		)

		# 30 + 10*5 + 2*15
		self.assertEqual(result.ride.fare, Decimal('110'))
		self.assertTrue(result.extra['fallback_route'])

	def test_create_ride_rejects_unknown_class(self):
		with self.assertRaises(ServiceValidationError):
			ride_management.create_ride(self.rider, 'A', 'B', 'truck', routing=FakeRouting())
		self.assertFalse(Ride.objects.exists())

	def test_drivers_cannot_request_rides(self):
		driver = make_driver('driver_one', 'WB-1001')
		with self.assertRaises(PermissionDeniedError):
			ride_management.create_ride(driver, 'A', 'B', 'car', routing=FakeRouting())

	def test_create_ride_dispatches_after_commit(self):
		driver = make_driver('driver_one', 'WB-1001', lat=28.6139, lng=77.2090)
		channel = open_channel(driver.id)

		with self.captureOnCommitCallbacks(execute=True) as callbacks:
			result = ride_management.create_ride(
				self.rider, '28.6139,77.2090', 'India Gate', 'car', routing=FakeRouting()
			)

		self.assertEqual(len(callbacks), 1)
		event, data = next_event(channel)
		self.assertEqual(event, 'ride-request')
		self.assertEqual(data['ride_id'], result.ride.id)
		self.assertTrue(RideOffer.objects.filter(ride=result.ride, driver=driver).exists())

	@patch('services.routing.get_routing_service')
	def test_create_view_returns_created_ride(self, mock_routing):
		mock_routing.return_value = FakeRouting(10, 20)
		factory = APIRequestFactory()
		request = factory.post('/api/rides/', {
			'pickup': 'Connaught Place',
			'destination': 'India Gate',
			'vehicle_type': 'moto',
		}, format='json')
		force_authenticate(request, user=self.rider)
		response = views.rides(request)

		self.assertEqual(response.status_code, 201)
		# 20 + 8*10 + 1.5*20
		self.assertEqual(Decimal(response.data['ride']['fare']), Decimal('130'))
		self.assertIn('otp', response.data['ride'])


class AcceptRideTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.factory = APIRequestFactory()
		self.rider = make_rider()
		self.driver_one = make_driver('driver_one', 'WB-1001')
		self.driver_two = make_driver('driver_two', 'WB-1002')
		self.ride = make_ride(self.rider)

	def test_only_first_accept_wins(self):
		ride_management.accept_ride(self.driver_one, self.ride.id)

		with self.assertRaises(RideUnavailableError):
			ride_management.accept_ride(self.driver_two, self.ride.id)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, Ride.ACCEPTED)
		self.assertEqual(self.ride.driver, self.driver_one)
		self.assertIsNotNone(self.ride.accepted_at)

	def test_inactive_driver_cannot_accept(self):
		DriverProfile.objects.filter(user=self.driver_one).update(status='inactive')

		with self.assertRaises(DriverNotAvailableError):
			ride_management.accept_ride(self.driver_one, self.ride.id)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, Ride.PENDING)

	def test_cancelled_ride_cannot_be_accepted(self):
		ride_management.cancel_ride(self.rider, self.ride.id)

		with self.assertRaises(RideUnavailableError):
			ride_management.accept_ride(self.driver_one, self.ride.id)

	def test_accept_notifies_winner_rider_and_losers(self):
		rider_channel = open_channel(self.rider.id)
		winner_channel = open_channel(self.driver_one.id)
		loser_channel = open_channel(self.driver_two.id)
		RideOffer.objects.create(ride=self.ride, driver=self.driver_one)
		RideOffer.objects.create(ride=self.ride, driver=self.driver_two)

		with self.captureOnCommitCallbacks(execute=True):
			ride_management.accept_ride(self.driver_one, self.ride.id)

		event, data = next_event(winner_channel)
		self.assertEqual(event, 'ride-accepted')
		self.assertEqual(data['otp'], '123456')
		self.assertEqual(data['rider']['id'], self.rider.id)

		event, data = next_event(rider_channel)
		self.assertEqual(event, 'ride-accepted')
		self.assertEqual(data['driver']['vehicle_number'], 'WB-1001')

		event, data = next_event(loser_channel)
		self.assertEqual(event, 'ride-taken')
		self.assertEqual(data['ride_id'], self.ride.id)

		statuses = dict(RideOffer.objects.values_list('driver_id', 'status'))
		self.assertEqual(statuses[self.driver_one.id], 'accepted')
		self.assertEqual(statuses[self.driver_two.id], 'taken')

	def test_accept_view_maps_lost_race_to_conflict(self):
		ride_management.accept_ride(self.driver_one, self.ride.id)

		request = self.factory.post('/api/rides/%d/accept/' % self.ride.id)
		force_authenticate(request, user=self.driver_two)
		response = views.accept_ride(request, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.data['error'], 'RideUnavailable')

	def test_accept_view_unknown_ride(self):
		request = self.factory.post('/api/rides/999/accept/')
		force_authenticate(request, user=self.driver_one)
		response = views.accept_ride(request, ride_id=999)

		self.assertEqual(response.status_code, 404)


class StartRideTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.rider = make_rider()
		self.driver = make_driver('driver_one', 'WB-1001')
		self.other_driver = make_driver('driver_two', 'WB-1002')
		self.ride = make_ride(self.rider)
		registry.claim_if_pending(self.ride.id, self.driver)

	def test_wrong_otp_leaves_ride_accepted(self):
		with self.assertRaises(InvalidOtpError):
			ride_management.start_ride(self.driver, self.ride.id, '654321')

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, Ride.ACCEPTED)
		self.assertIsNone(self.ride.started_at)

	def test_otp_is_trimmed_before_comparison(self):
		result = ride_management.start_ride(self.driver, self.ride.id, ' 123456 ')

		self.assertEqual(result.ride.status, Ride.ONGOING)
		self.assertIsNotNone(result.ride.started_at)

	def test_second_start_is_rejected(self):
		ride_management.start_ride(self.driver, self.ride.id, '123456')

		with self.assertRaises(InvalidTransitionError):
			ride_management.start_ride(self.driver, self.ride.id, '123456')

	def test_only_assigned_driver_can_start(self):
		with self.assertRaises(PermissionDeniedError):
			ride_management.start_ride(self.other_driver, self.ride.id, '123456')

	def test_start_view_wrong_otp_is_bad_request(self):
		factory = APIRequestFactory()
		request = factory.post('/api/rides/%d/start/' % self.ride.id, {'otp': '000000'}, format='json')
		force_authenticate(request, user=self.driver)
		response = views.start_ride(request, ride_id=self.ride.id)

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'InvalidOtp')


class EndRideSettlementTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.driver = make_driver('driver_one', 'WB-1001')

	def test_wallet_ride_is_settled_on_completion(self):
		rider = make_rider(balance='500')
		ride = make_ongoing_ride(rider, self.driver, wallet_linked=True)

		result = ride_management.end_ride(self.driver, ride.id)

		ride.refresh_from_db()
		rider.refresh_from_db()
		profile = DriverProfile.objects.get(user=self.driver)
		self.assertEqual(ride.status, Ride.COMPLETED)
		self.assertEqual(ride.payment_status, 'completed')
		self.assertEqual(ride.payment_method, 'wallet')
		self.assertEqual(ride.total_fare, Decimal('200'))
		self.assertEqual(Wallet.objects.get(user=rider).balance, Decimal('300'))
		self.assertEqual(profile.today_earnings, Decimal('160'))
		self.assertEqual(profile.total_trips, 1)
		self.assertEqual(rider.total_rides, 1)
		self.assertEqual(rider.total_spent, Decimal('200'))
		self.assertFalse(result.extra['payment_pending'])

	def test_short_wallet_defers_payment(self):
		rider = make_rider(balance='50')
		ride = make_ongoing_ride(rider, self.driver, wallet_linked=True)

		result = ride_management.end_ride(self.driver, ride.id)

		ride.refresh_from_db()
		rider.refresh_from_db()
		profile = DriverProfile.objects.get(user=self.driver)
		self.assertEqual(ride.status, Ride.COMPLETED)
		self.assertEqual(ride.payment_status, 'pending')
		self.assertFalse(ride.wallet_linked)
		self.assertEqual(Wallet.objects.get(user=rider).balance, Decimal('50'))
		self.assertEqual(profile.today_earnings, Decimal('0'))
		self.assertEqual(rider.total_rides, 1)
		self.assertEqual(rider.total_spent, Decimal('0'))
		self.assertTrue(result.extra['payment_pending'])
		self.assertEqual(result.extra['reason'], 'insufficient_funds')

	def test_waiting_charges_are_added_to_total(self):
		rider = make_rider()
		ride = make_ongoing_ride(rider, self.driver)

		ride_management.end_ride(self.driver, ride.id, waiting_charges=Decimal('15'))

		ride.refresh_from_db()
		self.assertEqual(ride.total_fare, Decimal('215'))
		self.assertEqual(ride.payment_status, 'pending')

	def test_negative_waiting_charges_rejected(self):
		rider = make_rider()
		ride = make_ongoing_ride(rider, self.driver)

		with self.assertRaises(ServiceValidationError):
			ride_management.end_ride(self.driver, ride.id, waiting_charges=-5)

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.ONGOING)

	def test_second_end_does_not_pay_twice(self):
		rider = make_rider(balance='500')
		ride = make_ongoing_ride(rider, self.driver, wallet_linked=True)
		ride_management.end_ride(self.driver, ride.id)

		with self.assertRaises(InvalidTransitionError):
			ride_management.end_ride(self.driver, ride.id)

		profile = DriverProfile.objects.get(user=self.driver)
		self.assertEqual(profile.total_trips, 1)
		self.assertEqual(profile.today_earnings, Decimal('160'))
		self.assertEqual(Wallet.objects.get(user=rider).balance, Decimal('300'))

	def test_end_requires_ongoing(self):
		rider = make_rider()
		ride = make_ride(rider)
		registry.claim_if_pending(ride.id, self.driver)

		with self.assertRaises(InvalidTransitionError):
			ride_management.end_ride(self.driver, ride.id)

	def test_completion_notifies_both_parties(self):
		rider = make_rider(balance='500')
		ride = make_ongoing_ride(rider, self.driver, wallet_linked=True)
		rider_channel = open_channel(rider.id)
		driver_channel = open_channel(self.driver.id)

		with self.captureOnCommitCallbacks(execute=True):
			ride_management.end_ride(self.driver, ride.id)

		event, data = next_event(rider_channel)
		self.assertEqual(event, 'payment-success')
		self.assertEqual(Decimal(str(data['wallet_balance'])), Decimal('300'))

		event, data = next_event(driver_channel)
		self.assertEqual(event, 'payment-success')
		self.assertEqual(Decimal(str(data['earnings'])), Decimal('160'))


class ManualPaymentTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.driver = make_driver('driver_one', 'WB-1001')

	def _completed_ride(self, balance=None):
		rider = make_rider(balance=balance)
		ride = make_ongoing_ride(rider, self.driver)
		ride_management.end_ride(self.driver, ride.id)
		return rider, Ride.objects.get(pk=ride.id)

	def test_cash_payment_settles_once(self):
		rider, ride = self._completed_ride()

		result = ride_management.confirm_manual_payment(rider, ride.id, 'cash')

		ride.refresh_from_db()
		rider.refresh_from_db()
		profile = DriverProfile.objects.get(user=self.driver)
		self.assertEqual(ride.payment_status, 'completed')
		self.assertEqual(ride.payment_method, 'cash')
		self.assertTrue(ride.payment_id.startswith('TXN'))
		self.assertEqual(profile.today_earnings, Decimal('160'))
		self.assertEqual(rider.total_spent, Decimal('200'))
		self.assertEqual(rider.total_rides, 1)
		self.assertEqual(result.extra['amount'], Decimal('200'))

		with self.assertRaises(InvalidTransitionError):
			ride_management.confirm_manual_payment(rider, ride.id, 'cash')
		profile.refresh_from_db()
		self.assertEqual(profile.total_trips, 1)

	def test_wallet_payment_gets_discount(self):
		rider, ride = self._completed_ride(balance='500')

		result = ride_management.confirm_manual_payment(rider, ride.id, 'wallet')

		self.assertEqual(result.extra['amount'], Decimal('190'))
		self.assertEqual(result.extra['discount'], Decimal('10'))
		self.assertEqual(Wallet.objects.get(user=rider).balance, Decimal('310'))
		self.assertEqual(DriverProfile.objects.get(user=self.driver).today_earnings, Decimal('160'))

	def test_short_wallet_payment_leaves_ride_pending(self):
		rider, ride = self._completed_ride(balance='50')

		with self.assertRaises(InsufficientFundsError):
			ride_management.confirm_manual_payment(rider, ride.id, 'wallet')

		ride.refresh_from_db()
		self.assertEqual(ride.payment_status, 'pending')
		self.assertEqual(Wallet.objects.get(user=rider).balance, Decimal('50'))
		self.assertEqual(DriverProfile.objects.get(user=self.driver).total_trips, 0)

	@patch('services.ride_management.ride_lifecycle.charge', side_effect=ProviderError('razorpay payment failed'))
	def test_gateway_failure_writes_nothing(self, mock_charge):
		rider, ride = self._completed_ride()

		with self.assertRaises(ProviderError):
			ride_management.confirm_manual_payment(rider, ride.id, 'razorpay')

		mock_charge.assert_called_once()
		ride.refresh_from_db()
		self.assertEqual(ride.payment_status, 'pending')
		self.assertEqual(DriverProfile.objects.get(user=self.driver).total_trips, 0)

	@patch('services.ride_management.ride_lifecycle.charge')
	def test_gateway_charge_is_keyed_by_ride(self, mock_charge):
		mock_charge.return_value = ChargeResult(True, 'rzp_abc', 'razorpay', Decimal('200'))
		rider, ride = self._completed_ride()

		ride_management.confirm_manual_payment(rider, ride.id, 'razorpay', {'vpa': 'asha@upi'})

		method, amount, details = mock_charge.call_args[0]
		self.assertEqual(details['idempotency_key'], f'ride-{ride.id}')
		self.assertEqual(details['vpa'], 'asha@upi')
		ride.refresh_from_db()
		self.assertEqual(ride.payment_id, 'rzp_abc')

	def test_payment_requires_completed_ride(self):
		rider = make_rider()
		ride = make_ongoing_ride(rider, self.driver)

		with self.assertRaises(InvalidTransitionError):
			ride_management.confirm_manual_payment(rider, ride.id, 'cash')

	def test_driver_cannot_pay_from_rider_wallet(self):
		rider, ride = self._completed_ride(balance='500')

		with self.assertRaises(PermissionDeniedError):
			ride_management.confirm_manual_payment(self.driver, ride.id, 'wallet')

	def test_pay_view_reports_insufficient_funds(self):
		rider, ride = self._completed_ride(balance='50')
		factory = APIRequestFactory()
		request = factory.post('/api/rides/%d/pay/' % ride.id, {'payment_method': 'wallet'}, format='json')
		force_authenticate(request, user=rider)
		response = views.pay_ride(request, ride_id=ride.id)

		self.assertEqual(response.status_code, 402)
		self.assertEqual(response.data['error'], 'InsufficientFunds')


class CancelRideTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.rider = make_rider()
		self.driver = make_driver('driver_one', 'WB-1001')

	def test_rider_cancels_pending_ride_and_offers_are_withdrawn(self):
		ride = make_ride(self.rider)
		RideOffer.objects.create(ride=ride, driver=self.driver)
		driver_channel = open_channel(self.driver.id)

		with self.captureOnCommitCallbacks(execute=True):
			result = ride_management.cancel_ride(self.rider, ride.id, 'Changed plans')

		self.assertEqual(result.ride.status, Ride.CANCELLED)
		self.assertEqual(result.ride.cancellation_reason, 'Changed plans')
		self.assertEqual(RideOffer.objects.get(ride=ride).status, 'withdrawn')
		event, data = next_event(driver_channel)
		self.assertEqual(event, 'ride-cancelled')
		self.assertEqual(data['ride_id'], ride.id)

	def test_driver_cancels_accepted_ride(self):
		ride = make_ride(self.rider)
		registry.claim_if_pending(ride.id, self.driver)
		rider_channel = open_channel(self.rider.id)

		with self.captureOnCommitCallbacks(execute=True):
			ride_management.cancel_ride(self.driver, ride.id)

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.CANCELLED)
		self.assertIsNotNone(ride.cancelled_at)
		event, _ = next_event(rider_channel)
		self.assertEqual(event, 'ride-cancelled')

	def test_ongoing_ride_can_be_cancelled(self):
		ride = make_ongoing_ride(self.rider, self.driver)

		result = ride_management.cancel_ride(self.rider, ride.id)

		self.assertEqual(result.ride.status, Ride.CANCELLED)

	def test_terminal_rides_cannot_be_cancelled(self):
		ride = make_ongoing_ride(self.rider, self.driver)
		ride_management.end_ride(self.driver, ride.id)

		with self.assertRaises(InvalidTransitionError):
			ride_management.cancel_ride(self.rider, ride.id)

		ride.refresh_from_db()
		self.assertEqual(ride.status, Ride.COMPLETED)

	def test_outsider_cannot_cancel(self):
		ride = make_ride(self.rider)
		stranger = make_rider('stranger')

		with self.assertRaises(PermissionDeniedError):
			ride_management.cancel_ride(stranger, ride.id)


class RateRideTests(TestCase):
	def setUp(self):
		self.rider = make_rider()
		self.driver = make_driver('driver_one', 'WB-1001')

	def _completed_ride(self):
		ride = make_ride(self.rider)
		Ride.objects.filter(pk=ride.id).update(
			driver=self.driver,
			status=Ride.COMPLETED,
			total_fare=ride.fare,
			ended_at=timezone.now(),
		)
		return ride

	def test_driver_rating_is_mean_of_rated_rides(self):
		first = self._completed_ride()
		second = self._completed_ride()

		ride_management.rate_ride(self.rider, first.id, 5)
		result = ride_management.rate_ride(self.rider, second.id, 4, 'Smooth ride')

		self.assertEqual(result.extra['driver_rating'], Decimal('4.5'))
		self.assertEqual(DriverProfile.objects.get(user=self.driver).rating, Decimal('4.5'))
		self.assertEqual(result.ride.review, 'Smooth ride')

	def test_ride_can_only_be_rated_once(self):
		ride = self._completed_ride()
		ride_management.rate_ride(self.rider, ride.id, 5)

		with self.assertRaises(InvalidTransitionError):
			ride_management.rate_ride(self.rider, ride.id, 1)

		ride.refresh_from_db()
		self.assertEqual(ride.rating, 5)

	def test_rating_out_of_range(self):
		ride = self._completed_ride()

		with self.assertRaises(ServiceValidationError):
			ride_management.rate_ride(self.rider, ride.id, 6)

	def test_fractional_rating_is_rejected(self):
		ride = self._completed_ride()

		for rating in (4.7, '4.5', float('nan'), True):
			with self.assertRaises(ServiceValidationError):
				ride_management.rate_ride(self.rider, ride.id, rating)

		ride.refresh_from_db()
		self.assertIsNone(ride.rating)

	def test_whole_number_strings_are_accepted(self):
		ride = self._completed_ride()

		result = ride_management.rate_ride(self.rider, ride.id, '4.0')

		self.assertEqual(result.ride.rating, 4)

	def test_unfinished_ride_cannot_be_rated(self):
		ride = make_ride(self.rider)

		with self.assertRaises(InvalidTransitionError):
			ride_management.rate_ride(self.rider, ride.id, 5)


class RideHistoryTests(TestCase):
	def setUp(self):
		self.rider = make_rider()
		self.driver = make_driver('driver_one', 'WB-1001')

	def test_history_filters_by_status_and_window(self):
		recent = make_ride(self.rider)
		old = make_ride(self.rider)
		Ride.objects.filter(pk=old.id).update(created_at=timezone.now() - timedelta(days=40))
		cancelled = make_ride(self.rider)
		Ride.objects.filter(pk=cancelled.id).update(status=Ride.CANCELLED)

		month = registry.list_by_party(self.rider, date_range='1month')
		self.assertEqual({r.id for r in month}, {recent.id, cancelled.id})

		pending = registry.list_by_party(self.rider, status=Ride.PENDING, date_range='1year')
		self.assertEqual({r.id for r in pending}, {recent.id, old.id})

	def test_current_rides_excludes_terminal(self):
		active = make_ride(self.rider)
		done = make_ride(self.rider)
		Ride.objects.filter(pk=done.id).update(status=Ride.COMPLETED)

		self.assertEqual([r.id for r in registry.current_for_party(self.rider)], [active.id])

	def test_unknown_status_filter_rejected(self):
		with self.assertRaises(ServiceValidationError):
			registry.list_by_party(self.rider, status='flying')


class DispatchTests(TestCase):
	def setUp(self):
		caches['presence'].clear()
		self.rider = make_rider()
		# Connaught Place
		self.near = make_driver('near', 'DL-1', lat=28.6140, lng=77.2095)
		self.nearer = make_driver('nearer', 'DL-2', lat=28.6139, lng=77.2091)
		self.far = make_driver('far', 'DL-3', lat=28.4595, lng=77.0266)
		self.inactive = make_driver('inactive', 'DL-4', status='inactive', lat=28.6139, lng=77.2090)
		self.moto = make_driver('moto', 'DL-5', vehicle_class='moto', lat=28.6139, lng=77.2090)

	def test_eligible_drivers_are_nearest_first_within_radius(self):
		drivers = find_eligible((28.6139, 77.2090), 2.0, 'car')

		self.assertEqual([p.user_id for p in drivers], [self.nearer.id, self.near.id])

	def test_falls_back_to_all_active_of_class(self):
		drivers = find_eligible((19.0760, 72.8777), 2.0, 'car')
		self.assertEqual(
			[p.user_id for p in drivers],
			[self.near.id, self.nearer.id, self.far.id]
		)

		unlocated = find_eligible(None, 2.0, 'car')
		self.assertEqual(len(unlocated), 3)

	def test_offers_recorded_only_for_connected_drivers(self):
		ride = make_ride(self.rider)
		channel = open_channel(self.near.id)
		profiles = DriverProfile.objects.filter(user__in=[self.near, self.nearer])

		reached = broadcast_ride_available(ride, profiles)

		self.assertEqual(reached, 1)
		self.assertEqual(list(ride.offers.values_list('driver_id', flat=True)), [self.near.id])
		event, data = next_event(channel)
		self.assertEqual(event, 'ride-request')
		self.assertEqual(data['otp'], '123456')
		self.assertEqual(data['rider']['id'], self.rider.id)

	def test_rider_told_when_no_driver_reached(self):
		ride = make_ride(self.rider, pickup='28.6139,77.2090')
		rider_channel = open_channel(self.rider.id)

		reached = dispatch_ride(ride.id)

		self.assertEqual(reached, 0)
		self.assertFalse(ride.offers.exists())
		event, data = next_event(rider_channel)
		self.assertEqual(event, 'no-drivers-available')
		self.assertEqual(data['ride_id'], ride.id)

	def test_geocoding_failure_widens_search(self):
		ride = make_ride(self.rider, pickup='Somewhere unknown')
		channel = open_channel(self.far.id)

		reached = dispatch_ride(ride.id, routing=FakeRouting(coords=None))

		self.assertEqual(reached, 1)
		event, _ = next_event(channel)
		self.assertEqual(event, 'ride-request')

	def test_dispatch_skips_rides_no_longer_pending(self):
		ride = make_ride(self.rider)
		Ride.objects.filter(pk=ride.id).update(status=Ride.CANCELLED)
		open_channel(self.near.id)

		self.assertEqual(dispatch_ride(ride.id), 0)
		self.assertFalse(ride.offers.exists())


class ConcurrentAcceptTests(TransactionTestCase):
	drivers = 5

	def setUp(self):
		caches['presence'].clear()
		self.rider = make_rider()
		self.ride = make_ride(self.rider)
		self.contenders = [
			make_driver(f'driver_{n}', f'WB-20{n:02d}') for n in range(self.drivers)
		]

	def test_exactly_one_driver_wins(self):
		barrier = threading.Barrier(self.drivers)
		winners, losers, failures = [], [], []

		def accept(driver):
			try:
				barrier.wait()
				ride_management.accept_ride(driver, self.ride.id)
				winners.append(driver.id)
			except RideUnavailableError:
				losers.append(driver.id)
			except Exception as exc:
				failures.append(exc)
			finally:
				connection.close()

		threads = [threading.Thread(target=accept, args=(driver,)) for driver in self.contenders]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join()

		self.assertEqual(failures, [])
		self.assertEqual(len(winners), 1)
		self.assertEqual(len(losers), self.drivers - 1)
		ride = Ride.objects.get(pk=self.ride.id)
		self.assertEqual(ride.status, Ride.ACCEPTED)
		self.assertEqual(ride.driver_id, winners[0])
