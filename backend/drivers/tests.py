from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from services.exceptions import ServiceValidationError
from .models import DriverProfile
from . import services
from .views import DriverLocationUpdateView, DriverStatsView, DriverStatusView


class EarningsWindowTests(TestCase):
	def setUp(self):
		self.driver = User.objects.create_user(
			username='driver_one',
			password='driver1234',
			role='driver',
			phone_number='9000000001'
		)
		self.profile = DriverProfile.objects.create(
			user=self.driver,
			vehicle_number='WB-1001',
			vehicle_class='car',
			status='active',
			today_earnings=Decimal('120'),
			trips_today=3,
			weekly_earnings=Decimal('900'),
			weekly_trips=12,
		)

	def test_daily_counters_reset_on_new_day(self):
		DriverProfile.objects.filter(pk=self.profile.pk).update(
			last_earnings_reset=timezone.now() - timedelta(days=1)
		)

		stats = services.get_driver_stats(self.driver)

		self.assertEqual(stats['today_earnings'], Decimal('0'))
		self.assertEqual(stats['trips_today'], 0)
		self.assertEqual(stats['weekly_earnings'], Decimal('900'))
		self.profile.refresh_from_db()
		self.assertEqual(timezone.localtime(self.profile.last_earnings_reset).date(), timezone.localdate())

	def test_same_day_keeps_counters(self):
		changed = services.refresh_earnings_window(self.profile)

		self.assertEqual(changed, [])
		self.assertEqual(self.profile.today_earnings, Decimal('120'))

	def test_weekly_counters_reset_after_seven_days(self):
		self.profile.last_weekly_reset = timezone.now() - timedelta(days=8)

		changed = services.refresh_earnings_window(self.profile, save=False)

		self.assertIn('weekly_earnings', changed)
		self.assertEqual(self.profile.weekly_earnings, Decimal('0'))
		self.assertEqual(self.profile.weekly_trips, 0)

	def test_weekly_counters_kept_within_seven_days(self):
		now = timezone.now()
		self.profile.last_weekly_reset = now - timedelta(days=6)
		self.profile.last_earnings_reset = now

		self.assertEqual(services.refresh_earnings_window(self.profile, now=now, save=False), [])
		self.assertEqual(self.profile.weekly_earnings, Decimal('900'))

	def test_record_ride_earnings_after_rollover(self):
		DriverProfile.objects.filter(pk=self.profile.pk).update(
			last_earnings_reset=timezone.now() - timedelta(days=2),
			total_trips=1,
			avg_ride_time=20,
		)

		profile = services.record_ride_earnings(self.driver, Decimal('160'), 31)

		self.assertEqual(profile.today_earnings, Decimal('160'))
		self.assertEqual(profile.trips_today, 1)
		self.assertEqual(profile.weekly_earnings, Decimal('1060'))
		self.assertEqual(profile.total_trips, 2)
		# ceil((20 * 1 + 31) / 2)
		self.assertEqual(profile.avg_ride_time, 26)
		self.assertEqual(profile.online_hours, 1)


class DriverStatusLocationTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.driver = User.objects.create_user(
			username='driver_one',
			password='driver1234',
			role='driver',
			phone_number='9000000001'
		)
		self.rider = User.objects.create_user(
			username='rider',
			password='pass1234',
			role='user',
			phone_number='9000000000'
		)
		self.profile = DriverProfile.objects.create(
			user=self.driver,
			vehicle_number='WB-1001',
			vehicle_class='auto',
		)

	def test_driver_goes_active(self):
		request = self.factory.put('/api/driver/status/', {'status': 'active'}, format='json')
		force_authenticate(request, user=self.driver)
		response = DriverStatusView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.profile.refresh_from_db()
		self.assertEqual(self.profile.status, 'active')

	def test_unknown_status_rejected(self):
		with self.assertRaises(ServiceValidationError):
			services.update_driver_status(self.profile, 'busy')

	def test_location_update(self):
		request = self.factory.post('/api/driver/location/', {
			'latitude': 28.6139,
			'longitude': 77.2090,
		}, format='json')
		force_authenticate(request, user=self.driver)
		response = DriverLocationUpdateView.as_view()(request)

		self.assertEqual(response.status_code, 200)
		self.profile.refresh_from_db()
		self.assertEqual(self.profile.current_latitude, Decimal('28.613900'))

	def test_out_of_range_location_rejected(self):
		with self.assertRaises(ServiceValidationError):
			services.update_driver_location(self.profile, 91, 0)

	def test_riders_cannot_read_driver_stats(self):
		request = self.factory.get('/api/driver/stats/')
		force_authenticate(request, user=self.rider)
		response = DriverStatsView.as_view()(request)

		self.assertEqual(response.status_code, 403)
