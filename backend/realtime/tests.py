from decimal import Decimal
from unittest.mock import AsyncMock, Mock

from asgiref.sync import async_to_sync, sync_to_async
from channels.layers import get_channel_layer
from channels.testing import WebsocketCommunicator
from django.core.cache import caches
from django.test import SimpleTestCase

from accounts.models import User
from .consumers import DriverConsumer, PassengerConsumer
from .presence import PresenceRegistry, get_presence, normalise_payload


class PresenceRegistryTests(SimpleTestCase):
	def setUp(self):
		caches['presence'].clear()
		self.presence = PresenceRegistry()

	def test_send_without_handle_is_a_no_op(self):
		self.assertFalse(self.presence.send(42, 'ride-started', {'ride_id': 1}))
		self.assertFalse(self.presence.send(None, 'ride-started'))

	def test_send_delivers_to_current_handle(self):
		layer = get_channel_layer()
		channel = async_to_sync(layer.new_channel)()
		self.presence.set_handle(42, channel)

		self.assertTrue(self.presence.send(42, 'payment-success', {'amount': Decimal('190.00')}))

		message = async_to_sync(layer.receive)(channel)
		self.assertEqual(message['type'], 'ride.event')
		self.assertEqual(message['event'], 'payment-success')
		self.assertEqual(message['data'], {'amount': 190.0})

	def test_reconnect_replaces_handle(self):
		self.presence.set_handle(42, 'old')
		self.presence.set_handle(42, 'new')

		# a late disconnect of the old socket must not drop the new one
		self.assertFalse(self.presence.clear_handle(42, 'old'))
		self.assertEqual(self.presence.get_handle(42), 'new')
		self.assertTrue(self.presence.clear_handle(42, 'new'))
		self.assertFalse(self.presence.is_online(42))

	def test_channel_layer_failure_is_swallowed(self):
		layer = Mock()
		layer.send = AsyncMock(side_effect=RuntimeError('layer down'))
		presence = PresenceRegistry(channel_layer=layer)
		presence.set_handle(42, 'specific.abc!def')

		self.assertFalse(presence.send(42, 'ride-taken', {'ride_id': 1}))

	def test_unserialisable_payload_is_not_sent(self):
		layer = Mock()
		layer.send = AsyncMock()
		presence = PresenceRegistry(channel_layer=layer)
		presence.set_handle(42, 'specific.abc!def')

		self.assertFalse(presence.send(42, 'ride-started', {'when': object()}))
		layer.send.assert_not_called()

	def test_payload_is_made_json_safe(self):
		self.assertEqual(normalise_payload({'fare': Decimal('12.50')}), {'fare': 12.5})
		self.assertEqual(normalise_payload(None), {})


class ConsumerTests(SimpleTestCase):
	def setUp(self):
		caches['presence'].clear()
		self.rider = User(id=101, username='rider', role='user')
		self.driver = User(id=202, username='driver', role='driver')

	def _communicator(self, consumer, path, user):
		communicator = WebsocketCommunicator(consumer.as_asgi(), path)
		communicator.scope['user'] = user
		return communicator

	async def test_connect_registers_presence_and_relays_events(self):
		communicator = self._communicator(PassengerConsumer, '/ws/passenger/', self.rider)
		connected, _ = await communicator.connect()
		self.assertTrue(connected)

		hello = await communicator.receive_json_from()
		self.assertEqual(hello['type'], 'connection_established')
		self.assertTrue(await sync_to_async(get_presence().is_online)(self.rider.id))

		sent = await sync_to_async(get_presence().send)(self.rider.id, 'ride-started', {'ride_id': 7})
		self.assertTrue(sent)
		event = await communicator.receive_json_from()
		self.assertEqual(event, {'type': 'ride-started', 'data': {'ride_id': 7}})

		await communicator.disconnect()
		self.assertFalse(await sync_to_async(get_presence().is_online)(self.rider.id))

	async def test_wrong_role_is_turned_away(self):
		communicator = self._communicator(DriverConsumer, '/ws/driver/', self.rider)
		await communicator.connect()

		error = await communicator.receive_json_from()
		self.assertEqual(error['type'], 'error')
		self.assertFalse(await sync_to_async(get_presence().is_online)(self.rider.id))
		await communicator.disconnect()

	async def test_unknown_driver_message(self):
		communicator = self._communicator(DriverConsumer, '/ws/driver/', self.driver)
		await communicator.connect()
		await communicator.receive_json_from()

		await communicator.send_json_to({'type': 'dance'})
		error = await communicator.receive_json_from()

		self.assertEqual(error['type'], 'error')
		self.assertIn('dance', error['message'])
		await communicator.disconnect()
