from unittest.mock import Mock, patch

from django.core.cache import caches
from django.test import TestCase
from rest_framework.test import APIRequestFactory, force_authenticate

from accounts.models import User
from services.exceptions import ProviderError
from services.routing import (
	Coordinates,
	GeocodeNotFoundError,
	LookupCache,
	RequestThrottle,
	RouteEstimate,
	RoutingService,
)
from . import views


class MapViewTests(TestCase):
	def setUp(self):
		self.factory = APIRequestFactory()
		self.rider = User.objects.create_user(username='rider', password='pass1234', role='user')
		self.routing = Mock()
		patcher = patch('maps.views.get_routing_service', return_value=self.routing)
		patcher.start()
		self.addCleanup(patcher.stop)

	def _get(self, view, path, params):
		request = self.factory.get(path, params)
		force_authenticate(request, user=self.rider)
		return view(request)

	def test_coordinates(self):
		self.routing.geocode.return_value = Coordinates(28.6139, 77.209)

		response = self._get(views.coordinates, '/api/maps/coordinates/', {'address': 'Connaught Place'})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data, {'lat': 28.6139, 'lng': 77.209})
		self.routing.geocode.assert_called_once_with('Connaught Place')

	def test_coordinates_require_address(self):
		response = self._get(views.coordinates, '/api/maps/coordinates/', {})

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.data['error'], 'ValidationError')
		self.routing.geocode.assert_not_called()

	def test_unknown_address(self):
		self.routing.geocode.side_effect = GeocodeNotFoundError()

		response = self._get(views.coordinates, '/api/maps/coordinates/', {'address': 'Atlantis'})

		self.assertEqual(response.status_code, 502)
		self.assertEqual(response.data['error'], 'ProviderError')

	def test_distance_time(self):
		self.routing.get_distance_time.return_value = RouteEstimate(12.5, 18.0)

		response = self._get(views.distance_time, '/api/maps/distance-time/', {
			'origin': 'MG Road',
			'destination': 'Indiranagar',
		})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['distance'], '12.50 km')
		self.assertEqual(response.data['duration'], '18.0 mins')
		self.assertEqual(response.data['distance_km'], 12.5)

	def test_distance_time_needs_both_ends(self):
		response = self._get(views.distance_time, '/api/maps/distance-time/', {'origin': 'MG Road'})

		self.assertEqual(response.status_code, 400)
		self.assertIn('destination', response.data['details'])

	def test_suggestions(self):
		self.routing.suggestions.return_value = ['Koramangala 5th Block', 'Koramangala 6th Block']

		response = self._get(views.suggestions, '/api/maps/suggestions/', {'input': 'Koram'})

		self.assertEqual(response.status_code, 200)
		self.assertEqual(len(response.data['suggestions']), 2)

	def test_anonymous_caller_is_rejected(self):
		request = self.factory.get('/api/maps/suggestions/', {'input': 'Koram'})

		response = views.suggestions(request)

		self.assertIn(response.status_code, (401, 403))
		self.routing.suggestions.assert_not_called()


class SuggestionDegradationTests(TestCase):
	def test_provider_failure_is_an_empty_list(self):
		caches['routing'].clear()
		provider = Mock()
		provider.autocomplete.side_effect = ProviderError()
		service = RoutingService(provider, LookupCache('routing'), RequestThrottle(0))
		rider = User.objects.create_user(username='rider', password='pass1234', role='user')
		request = APIRequestFactory().get('/api/maps/suggestions/', {'input': 'Koram'})
		force_authenticate(request, user=rider)

		with patch('maps.views.get_routing_service', return_value=service):
			response = views.suggestions(request)

		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.data['suggestions'], [])
