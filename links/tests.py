# howtographql-graphene-tutorial-fixed -- links/tests.py
#
# Copyright © 2017 Sean Bolton.
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
import datetime
from unittest import mock

from asgiref.sync import sync_to_async

from django.test import SimpleTestCase, TestCase, TransactionTestCase

import graphene
from graphene.relay import Node

from hackernews.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from hackernews.schema import Mutation, Query, Subscription
from hackernews.tests import FakeRedisMixin
from hackernews.utils import error_codes, format_graphql_errors
from links.models import LinkModel, VoteModel
from links.schema import MutationType, subscribed_kinds
from links.votes import VoteGuard, get_link_from_global_id
from users.auth import AuthService
from users.tests import context_with_auth, context_with_token, create_test_user


# ========== utility functions ==========

def create_test_link(user, url='http://example.com', description='Description'):
    return LinkModel.objects.create(url=url, description=description, posted_by=user)


def create_Link_orderBy_test_data(user):
    """Create test data for feed orderBy tests. Create three links,
    with description, url, and created_at each having a different sort order."""
    def dt(epoch):
        return datetime.datetime.fromtimestamp(epoch, tz=datetime.timezone.utc)
    link = LinkModel(description='Description C', url='http://a.com', posted_by=user)
    link.save()  # give 'auto_now_add' a chance to do its thing
    link.created_at = dt(1000000000) # new time stamp, least recent
    link.save()
    link = LinkModel(description='Description B', url='http://b.com', posted_by=user)
    link.save()
    link.created_at = dt(1000000400) # most recent
    link.save()
    link = LinkModel(description='Description A', url='http://c.com', posted_by=user)
    link.save()
    link.created_at = dt(1000000200)
    link.save()


# ========== GraphQL schema general tests ==========

class RootTests(TestCase):
    def test_root_types(self):
        """Make sure the root operation types are 'Query', 'Mutation' and 'Subscription'."""
        query = '''
          query RootTypesQuery {
            __schema {
              queryType { name }
              mutationType { name }
              subscriptionType { name }
            }
          }
        '''
        expected = {
            '__schema': {
                'queryType': {'name': 'Query'},
                'mutationType': {'name': 'Mutation'},
                'subscriptionType': {'name': 'Subscription'},
            }
        }
        schema = graphene.Schema(query=Query, mutation=Mutation, subscription=Subscription)
        result = schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        assert result.data == expected, '\n'+repr(expected)+'\n'+repr(result.data)

    def test_mutation_fields(self):
        query = '''
          query {
            __type(name: "Mutation") {
              fields { name }
            }
          }
        '''
        schema = graphene.Schema(query=Query, mutation=Mutation)
        result = schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        names = sorted(f['name'] for f in result.data['__type']['fields'])
        self.assertEqual(names, ['login', 'post', 'signup', 'vote'])


# ========== Relay Node tests ==========

class RelayNodeTests(TestCase):
    """Test that model nodes can be retreived via the Relay Node interface."""
    def setUp(self):
        self.user = create_test_user()

    def test_node_for_link(self):
        link = create_test_link(self.user, url='http://a.com')
        link_gid = Node.to_global_id('Link', link.pk)
        query = '''
          query {
            node(id: "%s") {
              id
              ...on Link {
                url
                postedBy { name }
              }
            }
          }
        ''' % link_gid
        expected = {
          'node': {
            'id': link_gid,
            'url': 'http://a.com',
            'postedBy': {'name': self.user.name},
          }
        }
        schema = graphene.Schema(query=Query)
        result = schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))

    def test_node_for_vote(self):
        link = create_test_link(self.user, url='http://a.com')
        vote = VoteModel.objects.create(link_id=link.pk, user_id=self.user.pk)
        vote_gid = Node.to_global_id('Vote', vote.pk)
        query = '''
          query {
            node(id: "%s") {
              id
              ...on Vote {
                link {
                  url
                }
                user {
                  name
                }
              }
            }
          }
        ''' % vote_gid
        expected = {
          'node': {
            'id': vote_gid,
            'link': {
              'url': 'http://a.com',
            },
            'user': {
              'name': self.user.name,
            },
          }
        }
        schema = graphene.Schema(query=Query)
        result = schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))


# ========== feed query tests ==========

class FeedTests(TestCase):
    def setUp(self):
        self.user = create_test_user()
        create_Link_orderBy_test_data(self.user)
        self.schema = graphene.Schema(query=Query)

    def feed_urls(self, arguments=''):
        query = '''
          query FeedTest {
            feed%s {
              links { url }
              count
            }
          }
        ''' % arguments
        result = self.schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        feed = result.data['feed']
        return [link['url'] for link in feed['links']], feed['count']

    def test_feed(self):
        link = LinkModel.objects.get(url='http://b.com')
        query = '''
          query FeedTest {
            feed(first: 1, orderBy: createdAt_DESC) {
              links {
                id
                description
                url
              }
            }
          }
        '''
        expected = {
            'feed': {
                'links': [
                    {
                        'id': Node.to_global_id('Link', link.pk),
                        'description': 'Description B',
                        'url': 'http://b.com',
                    }
                ]
            }
        }
        result = self.schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        assert result.data == expected, '\n'+repr(expected)+'\n'+repr(result.data)

    def test_feed_ordered_by(self):
        # default order is order of insertion
        self.assertEqual(self.feed_urls(),
                         (['http://a.com', 'http://b.com', 'http://c.com'], 3))
        # descending order of creation: b.com, c.com, a.com
        self.assertEqual(self.feed_urls('(orderBy: createdAt_DESC)'),
                         (['http://b.com', 'http://c.com', 'http://a.com'], 3))
        # ascending order on description: c.com, b.com, a.com
        self.assertEqual(self.feed_urls('(orderBy: description_ASC)'),
                         (['http://c.com', 'http://b.com', 'http://a.com'], 3))

    def test_feed_pagination(self):
        """count is the total, before skip and first are applied"""
        self.assertEqual(self.feed_urls('(orderBy: url_ASC, first: 2)'),
                         (['http://a.com', 'http://b.com'], 3))
        self.assertEqual(self.feed_urls('(orderBy: url_ASC, skip: 2, first: 2)'),
                         (['http://c.com'], 3))
        self.assertEqual(self.feed_urls('(orderBy: url_ASC, skip: 1)'),
                         (['http://b.com', 'http://c.com'], 3))

    def test_feed_filter(self):
        """filter matches url or description, ignoring case"""
        self.assertEqual(self.feed_urls('(filter: "B.COM")'), (['http://b.com'], 1))
        self.assertEqual(self.feed_urls('(filter: "description a")'), (['http://c.com'], 1))
        self.assertEqual(self.feed_urls('(filter: "nothing like it")'), ([], 0))

    def test_feed_negative_skip(self):
        result = self.schema.execute('query { feed(skip: -1) { count } }')
        self.assertIsNotNone(result.errors, msg='feed should have failed: negative skip')
        self.assertEqual(error_codes(result.errors), ['BAD_USER_INPUT'])

    def test_votes_on_link(self):
        """test votes field on Link type"""
        # first link will have one vote, last link will have two
        user2 = create_test_user(name='Another User', password='zyz987', email='ano@user.com')
        links = list(LinkModel.objects.order_by('id'))
        for link in links:
            VoteModel.objects.create(link_id=link.pk, user_id=self.user.pk)
        VoteModel.objects.create(link_id=links[-1].pk, user_id=user2.pk)
        query = '''
          query VotesOnLinkTest($linkId: ID!) {
            node(id: $linkId) {
              ... on Link {
                votes {
                  user { name }
                }
              }
            }
          }
        '''
        schema = graphene.Schema(query=Query)
        result = schema.execute(query,
                                variable_values={'linkId': Node.to_global_id('Link', links[0].pk)})
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        self.assertEqual(result.data, {'node': {'votes': [{'user': {'name': 'Test User'}}]}})
        result = schema.execute(query,
                                variable_values={'linkId': Node.to_global_id('Link', links[-1].pk)})
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        self.assertEqual(len(result.data['node']['votes']), 2)


# ========== post mutation tests ==========

class PostTests(TestCase):
    def setUp(self):
        self.user = create_test_user()
        self.user_gid = Node.to_global_id('User', self.user.pk)
        self.query = '''
          mutation PostMutation($url: String!, $description: String!) {
            post(url: $url, description: $description) {
              url
              description
              postedBy {
                id
              }
            }
          }
        '''
        self.variables = {
            'description': 'Description',
            'url': 'http://example.com',
        }
        self.schema = graphene.Schema(query=Query, mutation=Mutation)

    def test_post(self):
        """post with a user auth token"""
        result = self.schema.execute(self.query, variable_values=self.variables,
                                     context_value=context_with_token(self.user))
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        expected = {
          'post': {
            'description': 'Description',
            'url': 'http://example.com',
            'postedBy': { 'id': self.user_gid },
          }
        }
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))
        # check that the link was created properly
        link = LinkModel.objects.get(description='Description')
        self.assertEqual(link.url, 'http://example.com')
        self.assertEqual(link.posted_by, self.user)

    def test_post_without_token(self):
        """post with no auth token should not succeed, and should not create a link"""
        result = self.schema.execute(self.query, variable_values=self.variables,
                                     context_value=context_with_auth(None))
        self.assertIsNotNone(result.errors, msg='post should have failed: no auth token')
        self.assertEqual(result.errors[0].message, 'Not authenticated')
        self.assertIsInstance(result.errors[0].original_error, AuthenticationError)
        expected = { 'post': None } # empty result
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))
        self.assertFalse(LinkModel.objects.exists())

    def test_post_with_foreign_token(self):
        """a token signed with another secret is no good"""
        token = AuthService('some-other-secret').issue_token(self.user.pk)
        result = self.schema.execute(self.query, variable_values=self.variables,
                                     context_value=context_with_auth('Bearer ' + token))
        self.assertIsNotNone(result.errors, msg='post should have failed: bad auth token')
        self.assertEqual(error_codes(result.errors), ['UNAUTHENTICATED'])
        self.assertFalse(LinkModel.objects.exists())

    def test_post_invalid_url(self):
        self.variables['url'] = 'not a url'
        result = self.schema.execute(self.query, variable_values=self.variables,
                                     context_value=context_with_token(self.user))
        self.assertIsNotNone(result.errors, msg='post should have failed: invalid url')
        self.assertEqual(error_codes(result.errors), ['BAD_USER_INPUT'])
        self.assertIn('url', result.errors[0].message)
        self.assertFalse(LinkModel.objects.exists())


# ========== vote mutation tests ==========

class VoteTests(TestCase):
    def setUp(self):
        self.user = create_test_user()
        create_Link_orderBy_test_data(self.user)
        self.link = LinkModel.objects.latest('created_at')
        self.link_gid = Node.to_global_id('Link', self.link.pk)
        self.query = '''
          mutation VoteMutation($linkId: ID!) {
            vote(linkId: $linkId) {
              link {
                id
                votes { user { name } }
              }
              user { name }
            }
          }
        '''
        self.schema = graphene.Schema(query=Query, mutation=Mutation)

    def vote(self, link_gid, context):
        return self.schema.execute(self.query, variable_values={'linkId': link_gid},
                                   context_value=context)

    def expected(self):
        return {
          'vote': {
            'link': {
              'id': self.link_gid,
              'votes': [{'user': {'name': self.user.name}}],
            },
            'user': {'name': self.user.name},
          }
        }

    def test_vote(self):
        """test normal vote creation, and that duplicate votes are not allowed"""
        result = self.vote(self.link_gid, context_with_token(self.user))
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        expected = self.expected()
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))
        # verify that a second vote can't be created
        result = self.vote(self.link_gid, context_with_token(self.user))
        self.assertIsNotNone(result.errors,
                             msg='vote should have failed: duplicate votes not allowed')
        self.assertEqual(result.errors[0].message,
                         'Already voted for link: {}'.format(self.link_gid))
        self.assertIsInstance(result.errors[0].original_error, ConflictError)
        self.assertEqual(result.data, {'vote': None})
        self.assertEqual(VoteModel.objects.filter(user=self.user, link=self.link).count(), 1)

    def test_vote_other_pairs(self):
        """the same user may vote for another link, and another user for the same link"""
        result = self.vote(self.link_gid, context_with_token(self.user))
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        other_link = LinkModel.objects.exclude(pk=self.link.pk).first()
        result = self.vote(Node.to_global_id('Link', other_link.pk), context_with_token(self.user))
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        user2 = create_test_user(name='Another User', password='zyz987', email='ano@user.com')
        result = self.vote(self.link_gid, context_with_token(user2))
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        self.assertEqual(VoteModel.objects.count(), 3)

    def test_vote_not_logged(self):
        """ensure vote with no logged user fails, and records nothing"""
        result = self.vote(self.link_gid, context_with_auth(None))
        self.assertIsNotNone(result.errors, msg='vote should have failed: no user logged-in')
        self.assertEqual(error_codes(result.errors), ['UNAUTHENTICATED'])
        self.assertEqual(result.data, {'vote': None})
        self.assertFalse(VoteModel.objects.exists())

    def test_vote_bad_link(self):
        """ensure a link id that names no link causes failure"""
        last_link_pk = LinkModel.objects.order_by('id').last().pk
        for link_gid in (Node.to_global_id('Link', last_link_pk + 1),
                         Node.to_global_id('User', self.user.pk),
                         ' invalid base64 linkId '):
            with self.subTest(link_gid=link_gid):
                result = self.vote(link_gid, context_with_token(self.user))
                self.assertIsNotNone(result.errors, msg='vote should have failed: invalid linkId')
                self.assertIsInstance(result.errors[0].original_error, NotFoundError)
                self.assertEqual(result.data, {'vote': None})
        self.assertFalse(VoteModel.objects.exists())


class VoteGuardRaceTests(TestCase):
    """The existence check can be beaten by a concurrent vote; the unique constraint can't."""
    def test_duplicate_past_existence_check(self):
        auth = AuthService('not-the-real-secret')
        guard = VoteGuard(auth)
        user = create_test_user()
        link = create_test_link(user)
        context = context_with_auth('Bearer ' + auth.issue_token(user.pk))
        link_gid = Node.to_global_id('Link', link.pk)
        guard.vote(context, link_gid)
        # pretend the other vote hadn't been committed yet when we checked
        with mock.patch('django.db.models.query.QuerySet.exists', return_value=False):
            with self.assertRaises(ConflictError) as cm:
                guard.vote(context, link_gid)
        self.assertEqual(cm.exception.message, 'Already voted for link: {}'.format(link_gid))
        self.assertEqual(VoteModel.objects.count(), 1)


class LinkGlobalIdTests(TestCase):
    def setUp(self):
        self.link = create_test_link(create_test_user())

    def test_link(self):
        self.assertEqual(get_link_from_global_id(Node.to_global_id('Link', self.link.pk)),
                         self.link)

    def test_not_a_link(self):
        for link_gid in (Node.to_global_id('Link', self.link.pk + 1),
                         Node.to_global_id('Link', 'abc'),
                         Node.to_global_id('Vote', self.link.pk),
                         'TGluaw==',  # 'Link', with no ':'
                         ' invalid base64 linkId ',
                         'ünïcödé'):
            with self.subTest(link_gid=link_gid):
                with self.assertRaises(NotFoundError) as cm:
                    get_link_from_global_id(link_gid)
                self.assertEqual(cm.exception.message, 'Could not find link: {}'.format(link_gid))


# ========== subscription tests ==========

class SubscriptionTests(FakeRedisMixin, TransactionTestCase):
    """Subscriptions against committed changes, with the payload resolved in the event loop, where
    the ORM can't be used."""
    def setUp(self):
        super().setUp()
        self.user = create_test_user(name='Alice')
        self.schema = graphene.Schema(query=Query, mutation=Mutation, subscription=Subscription)

    async def next_result(self, stream):
        result = await asyncio.wait_for(stream.__anext__(), timeout=5)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        return result.data

    def edit_and_delete(self):
        link = create_test_link(self.user, url='http://a.com', description='A')
        link.description = 'A, edited'
        link.save(update_fields=['description'])
        link.delete()
        create_test_link(self.user, url='http://b.com', description='B')

    def vote(self, user, link):
        guard = VoteGuard(AuthService('not-the-real-secret'))
        context = context_with_auth('Bearer ' + guard.auth.issue_token(user.pk))
        return guard.vote(context, Node.to_global_id('Link', link.pk))

    async def test_new_link(self):
        stream = await self.schema.subscribe('''
          subscription {
            newLink {
              mutation
              node { url description }
            }
          }
        ''')
        try:
            await sync_to_async(create_test_link)(self.user, url='http://a.com', description='A')
            data = await self.next_result(stream)
        finally:
            await stream.aclose()
        expected = {
            'newLink': {
                'mutation': 'CREATED',
                'node': {'url': 'http://a.com', 'description': 'A'},
            }
        }
        self.assertEqual(data, expected, msg='\n'+repr(expected)+'\n'+repr(data))

    async def test_new_link_related(self):
        stream = await self.schema.subscribe('''
          subscription {
            newLink {
              node {
                url
                postedBy { name }
                votes { user { name } }
              }
            }
          }
        ''')
        try:
            await sync_to_async(create_test_link)(self.user, url='http://a.com')
            data = await self.next_result(stream)
        finally:
            await stream.aclose()
        expected = {
            'newLink': {
                'node': {'url': 'http://a.com', 'postedBy': {'name': 'Alice'}, 'votes': []},
            }
        }
        self.assertEqual(data, expected, msg='\n'+repr(expected)+'\n'+repr(data))

    async def test_new_link_only_creations_by_default(self):
        stream = await self.schema.subscribe('''
          subscription { newLink { mutation node { url } } }
        ''')
        try:
            await sync_to_async(self.edit_and_delete)()
            first = await self.next_result(stream)
            second = await self.next_result(stream)
        finally:
            await stream.aclose()
        # the first link was deleted before its creation was delivered
        self.assertEqual(first, {'newLink': {'mutation': 'CREATED', 'node': None}})
        self.assertEqual(second, {'newLink': {'mutation': 'CREATED', 'node': {'url': 'http://b.com'}}})

    async def test_new_link_all_mutations(self):
        stream = await self.schema.subscribe('''
          subscription {
            newLink(mutationIn: [CREATED, UPDATED, DELETED]) {
              mutation
              node { url }
              updatedFields
              previousValues { url description postedBy { name } }
            }
          }
        ''')
        try:
            await sync_to_async(self.edit_and_delete)()
            results = [await self.next_result(stream) for _ in range(4)]
        finally:
            await stream.aclose()
        expected = [
            {'mutation': 'CREATED', 'node': None, 'updatedFields': None, 'previousValues': None},
            {'mutation': 'UPDATED', 'node': None, 'updatedFields': ['description'],
             'previousValues': None},
            {'mutation': 'DELETED', 'node': None, 'updatedFields': None,
             'previousValues': {'url': 'http://a.com', 'description': 'A, edited',
                                'postedBy': {'name': 'Alice'}}},
            {'mutation': 'CREATED', 'node': {'url': 'http://b.com'}, 'updatedFields': None,
             'previousValues': None},
        ]
        self.assertEqual([r['newLink'] for r in results], expected)

    async def test_empty_mutation_in(self):
        result = await self.schema.subscribe('''
          subscription { newLink(mutationIn: []) { mutation } }
        ''')
        self.assertIsNone(result.data)
        self.assertEqual(error_codes(result.errors), ['BAD_USER_INPUT'])
        self.assertEqual(self.redis.subscriptions, [])

    async def test_new_vote(self):
        link = await sync_to_async(create_test_link)(self.user)
        stream = await self.schema.subscribe('''
          subscription { newVote { mutation node { id } } }
        ''')
        try:
            vote = await sync_to_async(self.vote)(self.user, link)
            data = await self.next_result(stream)
        finally:
            await stream.aclose()
        expected = {
            'newVote': {
                'mutation': 'CREATED',
                'node': {'id': Node.to_global_id('Vote', vote.pk)},
            }
        }
        self.assertEqual(data, expected, msg='\n'+repr(expected)+'\n'+repr(data))

    async def test_new_vote_related(self):
        """the front end's vote subscription, which walks from the vote to its link's votes"""
        link = await sync_to_async(create_test_link)(self.user, url='http://a.com')
        bob = await sync_to_async(create_test_user)(name='Bob', email='bob@user.com')
        await sync_to_async(self.vote)(bob, link)
        stream = await self.schema.subscribe('''
          subscription {
            newVote {
              node {
                link {
                  url
                  postedBy { name }
                  votes { user { name } }
                }
                user { name }
              }
            }
          }
        ''')
        try:
            await sync_to_async(self.vote)(self.user, link)
            data = await self.next_result(stream)
        finally:
            await stream.aclose()
        node = data['newVote']['node']
        self.assertEqual(node['user'], {'name': 'Alice'})
        self.assertEqual(node['link']['url'], 'http://a.com')
        self.assertEqual(node['link']['postedBy'], {'name': 'Alice'})
        self.assertEqual(sorted(v['user']['name'] for v in node['link']['votes']), ['Alice', 'Bob'])


class SubscribedKindsTests(SimpleTestCase):
    def test_default(self):
        self.assertEqual(subscribed_kinds(None), ('CREATED', ))

    def test_chosen(self):
        self.assertEqual(subscribed_kinds([MutationType['DELETED'], MutationType['UPDATED']]),
                         ('DELETED', 'UPDATED'))

    def test_empty(self):
        with self.assertRaises(ValidationError):
            subscribed_kinds([])
