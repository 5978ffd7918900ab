from decimal import Decimal
from unittest.mock import Mock, patch

import requests
from django.core.cache import caches
from django.test import SimpleTestCase

from services.exceptions import (
	InvalidRouteDataError,
	ProviderError,
	ServiceValidationError,
)
from services.fares import (
	calculate_wallet_discount,
	estimate_fares,
	fare_for_class,
	get_fare_estimate,
	parse_route_value,
)
from services.payments import charge, register_gateway
from services.payments.gateways import ChargeResult
from services.routing import (
	Coordinates,
	GeocodeNotFoundError,
	LocationIQClient,
	LookupCache,
	NoRouteError,
	RateLimitedError,
	RequestThrottle,
	RouteEstimate,
	RoutingService,
)


class FareEstimatorTests(SimpleTestCase):
	def test_fares_per_class(self):
		estimate = estimate_fares(10, 20)

		self.assertEqual(estimate.fare['car'], Decimal('260'))
		self.assertEqual(estimate.fare['auto'], Decimal('170'))
		self.assertEqual(estimate.fare['moto'], Decimal('130'))

	def test_halves_round_up(self):
		# moto: 20 + 8 + 4.5
		self.assertEqual(fare_for_class(estimate_fares(1, 3), 'moto'), Decimal('33'))

	def test_fares_grow_with_distance_and_time(self):
		for cls in ('car', 'auto', 'moto'):
			self.assertLessEqual(
				fare_for_class(estimate_fares(4, 10), cls),
				fare_for_class(estimate_fares(6, 10), cls)
			)
			self.assertLessEqual(
				fare_for_class(estimate_fares(4, 10), cls),
				fare_for_class(estimate_fares(4, 12), cls)
			)

	def test_auto_never_costs_more_than_car(self):
		for km, minutes in ((0.5, 1), (5, 15), (42, 95)):
			estimate = estimate_fares(km, minutes)
			self.assertLessEqual(estimate.fare['auto'], estimate.fare['car'])

	def test_provider_strings_are_parsed(self):
		self.assertEqual(parse_route_value('12.50 km', 'distance'), 12.5)
		self.assertEqual(parse_route_value('18.0 mins', 'duration'), 18.0)

	def test_invalid_route_data(self):
		for value in (None, 0, -3, 'unknown', float('inf'), True):
			with self.assertRaises(InvalidRouteDataError):
				parse_route_value(value, 'distance')

	def test_unknown_class(self):
		with self.assertRaises(ServiceValidationError):
			fare_for_class(estimate_fares(5, 10), 'truck')

	def test_routing_failure_falls_back_to_default_route(self):
		routing = Mock()
		routing.get_distance_time.side_effect = RateLimitedError()

		estimate = get_fare_estimate('A', 'B', routing)

		self.assertTrue(estimate.fallback)
		self.assertEqual(estimate.distance, 5)
		self.assertEqual(estimate.fare['car'], Decimal('170'))

	def test_bad_provider_numbers_fall_back_too(self):
		routing = Mock()
		routing.get_distance_time.return_value = RouteEstimate(0, 12)

		self.assertTrue(get_fare_estimate('A', 'B', routing).fallback)

	def test_as_dict_uses_whole_amounts(self):
		data = estimate_fares(10, 20).as_dict()

		self.assertEqual(data['fare'], {'car': 260, 'moto': 130, 'auto': 170})
		self.assertFalse(data['fallback'])

	def test_wallet_discount(self):
		self.assertEqual(calculate_wallet_discount(200), {
			'original_fare': Decimal('200'),
			'discount': Decimal('10'),
			'final_amount': Decimal('190'),
			'discount_percentage': 5,
		})
		self.assertEqual(calculate_wallet_discount(50)['final_amount'], Decimal('47'))


class LocationIQClientTests(SimpleTestCase):
	def setUp(self):
		self.client = LocationIQClient('test-key', base_url='https://maps.test/v1/')
		self.client.session = Mock()

	def _respond(self, status_code=200, payload=None):
		response = Mock(status_code=status_code)
		response.json.return_value = payload
		self.client.session.get.return_value = response

	def test_geocode(self):
		self._respond(payload=[{'lat': '28.6139', 'lon': '77.2090'}])

		point = self.client.geocode('Connaught Place')

		self.assertEqual(point, Coordinates(28.6139, 77.2090))
		args, kwargs = self.client.session.get.call_args
		self.assertEqual(args[0], 'https://maps.test/v1/search.php')
		self.assertEqual(kwargs['params']['key'], 'test-key')

	def test_geocode_no_results(self):
		self._respond(status_code=404)

		with self.assertRaises(GeocodeNotFoundError):
			self.client.geocode('Atlantis')

	def test_rate_limited(self):
		self._respond(status_code=429)

		with self.assertRaises(RateLimitedError):
			self.client.geocode('Connaught Place')

	def test_timeout_becomes_provider_error(self):
		self.client.session.get.side_effect = requests.Timeout()

		with self.assertRaises(ProviderError):
			self.client.geocode('Connaught Place')

	def test_route_converts_units(self):
		self._respond(payload={'routes': [{'distance': 12500, 'duration': 1080}]})

		route = self.client.route(Coordinates(28.61, 77.20), Coordinates(28.55, 77.25))

		self.assertEqual(route, RouteEstimate(12.5, 18.0))
		self.assertIn('directions/driving/77.2,28.61;77.25,28.55', self.client.session.get.call_args[0][0])

	def test_geocode_error_body_is_not_found(self):
		self._respond(payload={'error': 'Unable to geocode'})

		with self.assertRaises(GeocodeNotFoundError):
			self.client.geocode('Nowhere road')

	def test_route_list_body_is_no_route(self):
		self._respond(payload=[{'distance': 12500}])

		with self.assertRaises(NoRouteError):
			self.client.route(Coordinates(28.61, 77.20), Coordinates(28.55, 77.25))

	def test_malformed_geocode_body_falls_back_to_default_fare(self):
		caches['routing'].clear()
		self._respond(payload={'error': 'Unable to geocode'})
		service = RoutingService(self.client, LookupCache('routing'), RequestThrottle(0))

		estimate = get_fare_estimate('Nowhere road', 'Elsewhere lane', service)

		self.assertTrue(estimate.fallback)
		self.assertEqual(estimate.fare['car'], Decimal('170'))


class RoutingServiceTests(SimpleTestCase):
	def setUp(self):
		caches['routing'].clear()
		self.provider = Mock()
		self.service = RoutingService(
			client=self.provider,
			cache=LookupCache('routing'),
			throttle=RequestThrottle(0),
		)

	def test_geocode_is_cached_by_normalised_address(self):
		self.provider.geocode.return_value = Coordinates(12.97, 77.59)

		self.service.geocode('MG Road')
		point = self.service.geocode('  mg road ')

		self.assertEqual(point, Coordinates(12.97, 77.59))
		self.provider.geocode.assert_called_once()

	def test_coordinate_descriptors_skip_provider(self):
		self.assertEqual(self.service.geocode('12.5,77.5'), Coordinates(12.5, 77.5))
		self.provider.geocode.assert_not_called()

	def test_route_lookup_is_cached(self):
		self.provider.route.return_value = RouteEstimate(8.0, 20.0)

		self.service.get_distance_time('12.9,77.5', '13.0,77.6')
		self.service.get_distance_time('12.9,77.5', '13.0,77.6')

		self.provider.route.assert_called_once()

	def test_route_errors_propagate(self):
		self.provider.geocode.side_effect = GeocodeNotFoundError()

		with self.assertRaises(ProviderError):
			self.service.get_distance_time('Nowhere', 'Elsewhere')

	def test_suggestions_degrade_to_empty(self):
		self.provider.autocomplete.side_effect = ProviderError()

		self.assertEqual(self.service.suggestions('Koramangala'), [])
		self.assertEqual(self.service.suggestions('K'), [])


class RequestThrottleTests(SimpleTestCase):
	def test_waits_out_the_minimum_interval(self):
		ticks = iter([0.0, 0.3, 1.0, 5.0])
		sleeps = []
		throttle = RequestThrottle(1.0, clock=lambda: next(ticks), sleep=sleeps.append)

		self.assertEqual(throttle.wait(), 0.0)
		self.assertAlmostEqual(throttle.wait(), 0.7)
		self.assertEqual(throttle.wait(), 0.0)
		self.assertEqual(len(sleeps), 1)


class PaymentGatewayTests(SimpleTestCase):
	def test_simulated_gateways(self):
		self.assertTrue(charge('razorpay', 100).transaction_id.startswith('rzp_'))
		self.assertTrue(charge('phonepe', 100).transaction_id.startswith('phonepe_'))
		self.assertTrue(charge('upi', 100).transaction_id.startswith('TXN'))
		self.assertEqual(charge('cash', 100, {'transaction_id': 'R-42'}).transaction_id, 'R-42')

	def test_unknown_method(self):
		with self.assertRaises(ServiceValidationError):
			charge('bitcoin', 100)

	def test_declined_charge_raises(self):
		def declined(amount, details):
			return ChargeResult(False, None, 'card', amount, 'Card declined')

		with patch.dict('services.payments.gateways._GATEWAYS'):
			register_gateway('card', declined)
			with self.assertRaises(ProviderError) as ctx:
				charge('card', 100)
		self.assertEqual(ctx.exception.message, 'Card declined')
