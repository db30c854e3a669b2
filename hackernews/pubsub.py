# hackernews-graphql-backend -- hackernews/pubsub.py
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

import json
import logging
from collections import namedtuple
from functools import lru_cache

import redis
import redis.asyncio
from asgiref.sync import sync_to_async

from django.conf import settings
from django.core import serializers
from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import prefetch_related_objects

logger = logging.getLogger(__name__)


# ========== model change events ==========

# GraphQL subscriptions in graphql-core 3 are async iterators returned by a field's subscribe
# function. The events come from Django model signals (see links/signals.py) and travel over Redis
# pub/sub, one channel per model, so a change committed by any worker process reaches the
# subscribers held open by every other one.

CREATED = 'CREATED'
UPDATED = 'UPDATED'
DELETED = 'DELETED'
MUTATION_KINDS = (CREATED, UPDATED, DELETED)

# sender: the model class. pk: the changed row's primary key. node: the instance, or None for
# DELETED. updated_fields: the field names passed to save(update_fields=...), if any.
# previous_values: an unsaved copy of the deleted instance, for DELETED.
ChangeEvent = namedtuple('ChangeEvent',
                         ['sender', 'mutation', 'pk', 'node', 'updated_fields', 'previous_values'])

CHANNEL_PREFIX = 'hackernews:changes:'

# seconds to wait for Redis to confirm a new subscription
SUBSCRIBE_TIMEOUT = 5.0


def channel_for(model):
    return CHANNEL_PREFIX + model._meta.label_lower


@lru_cache(maxsize=None)
def get_redis_client():
    """The synchronous client that model signal handlers publish with."""
    return redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )


def get_async_redis_client():
    """A new asyncio client. Each subscription owns one, as they are bound to an event loop."""
    return redis.asyncio.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=5,
    )


def encode_event(event):
    """Serialize a ChangeEvent for the wire. The node travels as its primary key only, and is
    loaded again by each subscriber."""
    previous = event.previous_values
    if previous is not None:
        previous = serializers.serialize('python', [previous])[0]
    return json.dumps({
        'mutation': event.mutation,
        'pk': event.pk,
        'updatedFields': event.updated_fields,
        'previousValues': previous,
    }, cls=DjangoJSONEncoder)


def decode_event(model, data):
    payload = json.loads(data)
    previous = payload['previousValues']
    if previous is not None:
        previous = next(serializers.deserialize('python', [previous])).object
    return ChangeEvent(sender=model, mutation=payload['mutation'], pk=payload['pk'], node=None,
                       updated_fields=payload['updatedFields'], previous_values=previous)


def publish(model, message):
    """Send an encoded event to the model's subscribers. Runs from transaction.on_commit()."""
    channel = channel_for(model)
    try:
        receivers = get_redis_client().publish(channel, message)
    except redis.RedisError:
        # the change is committed by now; only its notification is lost
        logger.exception('could not publish to %s', channel)
        return
    logger.debug('published to %s (%d receivers)', channel, receivers)


# ========== subscriptions ==========

class ChangeStream(object):
    """An async iterator of the committed ChangeEvents for one model, restricted to some mutation
    kinds, backed by a Redis subscription of its own.

    Each event's node is loaded again from the database with the relations named by 'related'
    already fetched, as are the relations of its previous_values, so the GraphQL payload can be
    resolved inside the event loop without touching the ORM.
    """
    poll_interval = 1.0

    def __init__(self, model, kinds=MUTATION_KINDS, related=()):
        self.model = model
        self.kinds = frozenset(kinds)
        self.related = tuple(related)
        self.channel = channel_for(model)
        self.client = get_async_redis_client()
        self.pubsub = self.client.pubsub()
        self.closed = False

    async def open(self):
        await self.pubsub.subscribe(self.channel)
        # Don't hand the stream out until Redis has registered it, so nothing committed after
        # subscribe() returns is missed.
        message = await self.pubsub.get_message(timeout=SUBSCRIBE_TIMEOUT)
        if message is None or message['type'] != 'subscribe':
            await self.aclose()
            raise redis.TimeoutError('no confirmation of subscription to {}'.format(self.channel))
        logger.debug('subscribed to %s %s events', self.channel, sorted(self.kinds))

    def __aiter__(self):
        return self

    async def __anext__(self):
        while not self.closed:
            try:
                message = await self.pubsub.get_message(ignore_subscribe_messages=True,
                                                        timeout=self.poll_interval)
            except redis.ConnectionError:
                # Redis drops subscribers that let too much go unread (client-output-buffer-limit)
                logger.warning('lost subscription to %s', self.channel)
                await self.aclose()
                break
            if message is None or message['type'] != 'message':
                continue
            event = await sync_to_async(self.receive)(message['data'])
            if event is not None:
                return event
        raise StopAsyncIteration

    def receive(self, data):
        """Decode a message, and load its node. Uses the ORM, so must not run in the event loop."""
        event = decode_event(self.model, data)
        if event.mutation not in self.kinds:
            return None
        if event.previous_values is not None:
            prefetch_related_objects([event.previous_values], *self.related)
        if event.mutation != DELETED and event.pk is not None:
            # None if the row has been deleted since
            node = (self.model._default_manager.prefetch_related(*self.related)
                    .filter(pk=event.pk).first())
            event = event._replace(node=node)
        return event

    async def aclose(self):
        if not self.closed:
            self.closed = True
            await self.pubsub.aclose()
            await self.client.aclose()
            logger.debug('unsubscribed from %s', self.channel)


async def subscribe(model, kinds=MUTATION_KINDS, related=()):
    """Open a ChangeStream; must be awaited inside the event loop that will read it."""
    stream = ChangeStream(model, kinds, related)
    await stream.open()
    return stream
