# hackernews-graphql-backend -- hackernews/tests.py
#
# Copyright © 2026 The hackernews-graphql-backend authors.
#
# Permission is hereby granted, free of charge, to any person obtaining
# a copy of this software and associated documentation files (the
# "Software"), to deal in the Software without restriction, including
# without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to
# permit persons to whom the Software is furnished to do so, subject to
# the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS BE
# LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION
# OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION
# WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE SOFTWARE.

import asyncio
import json
import threading
from unittest import mock

import redis
from asgiref.sync import sync_to_async

from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import SimpleTestCase, TestCase

import graphene

from users.models import UserModel
from .errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from .pubsub import (CREATED, DELETED, UPDATED, ChangeEvent, encode_event, publish, subscribe)
from .utils import error_codes, format_graphql_errors


# ========== a Redis stand-in for tests ==========

class FakeRedis(object):
    """Just enough of redis.Redis and redis.asyncio.Redis to publish and subscribe within one
    process. As with Redis, a message goes to whoever is subscribed to its channel when it is
    published, and publish() may be called from any thread."""

    def __init__(self):
        self.lock = threading.Lock()
        self.subscriptions = []
        self.published = []

    def publish(self, channel, message):
        with self.lock:
            self.published.append((channel, message))
            receivers = [p for p in self.subscriptions if channel in p.channels]
        for pubsub in receivers:
            pubsub.push({'type': 'message', 'channel': channel, 'data': message})
        return len(receivers)

    def pubsub(self):
        return FakePubSub(self)

    def drop_subscribers(self):
        """Disconnect every subscriber, as Redis does one whose output buffer fills up."""
        with self.lock:
            receivers, self.subscriptions = self.subscriptions, []
        for pubsub in receivers:
            pubsub.push(redis.ConnectionError('Connection closed by server.'))

    async def aclose(self):
        pass


class FakePubSub(object):
    def __init__(self, server):
        self.server = server
        self.channels = set()
        self.loop = None
        self.queue = None

    def push(self, message):
        self.loop.call_soon_threadsafe(self.queue.put_nowait, message)

    async def subscribe(self, *channels):
        self.loop = asyncio.get_running_loop()
        self.queue = asyncio.Queue()
        with self.server.lock:
            self.channels.update(channels)
            self.server.subscriptions.append(self)
        for channel in channels:
            self.queue.put_nowait({'type': 'subscribe', 'channel': channel,
                                   'data': len(self.channels)})

    async def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        try:
            message = await asyncio.wait_for(self.queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if isinstance(message, Exception):
            raise message
        if ignore_subscribe_messages and message['type'] == 'subscribe':
            return None
        return message

    async def aclose(self):
        with self.server.lock:
            if self in self.server.subscriptions:
                self.server.subscriptions.remove(self)


class FakeRedisMixin(object):
    """Point hackernews.pubsub at a FakeRedis, which the test can reach as self.redis."""
    def setUp(self):
        super().setUp()
        self.redis = FakeRedis()
        for name in ('get_redis_client', 'get_async_redis_client'):
            patcher = mock.patch('hackernews.pubsub.' + name, return_value=self.redis)
            patcher.start()
            self.addCleanup(patcher.stop)


# ========== change stream tests ==========

class ChangeStreamTests(FakeRedisMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.user = UserModel.objects.create(name='Alice', email='alice@example.com',
                                             password='not-a-real-hash')

    def send(self, mutation, pk, updated_fields=None, previous_values=None):
        # model signals publish from whatever thread saved the model, never the subscriber's
        publish(UserModel, encode_event(ChangeEvent(
            sender=UserModel, mutation=mutation, pk=pk, node=None,
            updated_fields=updated_fields, previous_values=previous_values)))

    async def next_event(self, stream):
        return await asyncio.wait_for(stream.__anext__(), timeout=5)

    def test_publish(self):
        self.send(UPDATED, self.user.pk, updated_fields=['name'])
        channel, message = self.redis.published[0]
        self.assertEqual(channel, 'hackernews:changes:users.usermodel')
        self.assertEqual(json.loads(message), {
            'mutation': 'UPDATED',
            'pk': self.user.pk,
            'updatedFields': ['name'],
            'previousValues': None,
        })

    def test_publish_failure_is_logged(self):
        """the change is already committed, so a Redis outage doesn't fail the request"""
        with mock.patch.object(self.redis, 'publish', side_effect=redis.ConnectionError('down')):
            with self.assertLogs('hackernews.pubsub', level='ERROR') as cm:
                self.send(CREATED, self.user.pk)
        self.assertIn('hackernews:changes:users.usermodel', cm.output[0])

    async def test_delivers_matching_events(self):
        stream = await subscribe(UserModel, (CREATED, ))
        try:
            self.redis.publish('hackernews:changes:users.othermodel',
                               json.dumps({'mutation': 'CREATED', 'pk': 1}))
            await sync_to_async(self.send)(UPDATED, self.user.pk)
            await sync_to_async(self.send)(CREATED, self.user.pk)
            event = await self.next_event(stream)
        finally:
            await stream.aclose()
        self.assertEqual(event.sender, UserModel)
        self.assertEqual(event.mutation, CREATED)
        self.assertEqual(event.pk, self.user.pk)
        # loaded again from the database, not sent over the wire
        self.assertEqual(event.node, self.user)
        self.assertEqual(event.node.email, 'alice@example.com')

    async def test_subscribed_before_returning(self):
        """a change published right after subscribe() returns is not lost"""
        stream = await subscribe(UserModel)
        try:
            self.assertEqual(len(self.redis.subscriptions), 1)
            await sync_to_async(self.send)(UPDATED, self.user.pk, updated_fields=['email', 'name'])
            event = await self.next_event(stream)
        finally:
            await stream.aclose()
        self.assertEqual(event.mutation, UPDATED)
        self.assertEqual(event.updated_fields, ['email', 'name'])

    async def test_row_gone_before_delivery(self):
        stream = await subscribe(UserModel, (UPDATED, ))
        try:
            await sync_to_async(self.send)(UPDATED, self.user.pk + 1000)
            event = await self.next_event(stream)
        finally:
            await stream.aclose()
        self.assertIsNone(event.node)

    async def test_deleted_carries_previous_values(self):
        previous = UserModel(pk=self.user.pk, name='Bob', email='bob@example.com',
                             password='not-a-real-hash')
        stream = await subscribe(UserModel, (DELETED, ))
        try:
            await sync_to_async(self.send)(DELETED, self.user.pk, previous_values=previous)
            event = await self.next_event(stream)
        finally:
            await stream.aclose()
        self.assertIsNone(event.node)
        self.assertIsInstance(event.previous_values, UserModel)
        self.assertEqual(event.previous_values.pk, self.user.pk)
        self.assertEqual(event.previous_values.name, 'Bob')
        self.assertEqual(event.previous_values.email, 'bob@example.com')

    async def test_aclose(self):
        stream = await subscribe(UserModel)
        await stream.aclose()
        self.assertEqual(self.redis.subscriptions, [])
        await sync_to_async(self.send)(CREATED, self.user.pk)
        with self.assertRaises(StopAsyncIteration):
            await stream.__anext__()
        # closing twice is harmless
        await stream.aclose()

    async def test_dropped_by_redis(self):
        """a subscriber Redis disconnects for falling behind sees its stream end"""
        stream = await subscribe(UserModel)
        self.redis.drop_subscribers()
        with self.assertLogs('hackernews.pubsub', level='WARNING') as cm:
            with self.assertRaises(StopAsyncIteration):
                await self.next_event(stream)
        self.assertIn('lost subscription to hackernews:changes:users.usermodel', cm.output[0])
        self.assertTrue(stream.closed)


# ========== error kind tests ==========

class ErrorTests(SimpleTestCase):
    def test_codes(self):
        for cls, code in ((AuthenticationError, 'UNAUTHENTICATED'),
                          (NotFoundError, 'NOT_FOUND'),
                          (ConflictError, 'CONFLICT'),
                          (ValidationError, 'BAD_USER_INPUT')):
            with self.subTest(cls=cls):
                e = cls('oops')
                self.assertEqual(e.message, 'oops')
                self.assertEqual(e.extensions, {'code': code})

    def test_validation_error_from_django(self):
        e = ValidationError.from_django(DjangoValidationError({
            'url': ['Enter a valid URL.'],
            'email': ['Enter a valid email address.'],
        }))
        self.assertEqual(e.message, 'email: Enter a valid email address. url: Enter a valid URL.')
        e = ValidationError.from_django(DjangoValidationError('No good.'))
        self.assertEqual(e.message, 'No good.')

    def test_errors_reach_the_client(self):
        """a resolver's error comes back with its message and code, and the field is null"""
        class Query(graphene.ObjectType):
            thing = graphene.String()

            def resolve_thing(self, info):
                raise ConflictError('Already have one')

        result = graphene.Schema(query=Query).execute('query { thing }')
        self.assertEqual(result.data, {'thing': None})
        self.assertEqual(result.errors[0].message, 'Already have one')
        self.assertEqual(error_codes(result.errors), ['CONFLICT'])
        self.assertIsInstance(result.errors[0].original_error, ConflictError)
        text = format_graphql_errors(result.errors)
        self.assertIn('Already have one', text)
        self.assertIn("'thing'", text)
        self.assertIn('ConflictError', text)

    def test_format_no_errors(self):
        self.assertIsNone(format_graphql_errors(None))
        self.assertIsNone(format_graphql_errors([]))
