# howtographql-graphene-tutorial-fixed -- users/tests.py
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

import jwt

from django.contrib.auth.hashers import check_password, make_password
from django.core.exceptions import ImproperlyConfigured
from django.test import TestCase

import graphene
from graphene.relay import Node

from hackernews.errors import AuthenticationError, NotFoundError, ValidationError
from hackernews.schema import Mutation, Query
from hackernews.utils import error_codes, format_graphql_errors
from .auth import AuthService, get_auth_service
from .models import UserModel


# ========== utility functions ==========

def create_test_user(name=None, password=None, email=None):
    user = UserModel.objects.create(
        name=name or 'Test User',
        password=make_password(password or 'abc123'),
        email=email or 'test@user.com'
    )
    return user


def context_with_auth(auth):
    """Return a stand-in for the Django request, carrying the given Authorization header."""
    class Context(object):
        META = {'HTTP_AUTHORIZATION': auth} if auth is not None else {}
    return Context


def context_with_token(user):
    return context_with_auth('Bearer {}'.format(get_auth_service().issue_token(user.pk)))


# ========== session token tests ==========

class TokenTests(TestCase):
    def setUp(self):
        self.auth = AuthService('not-the-real-secret')

    def test_token_round_trip(self):
        """a token decodes to the user id it was issued for"""
        token = self.auth.issue_token(42)
        self.assertIsInstance(token, str)
        self.assertEqual(self.auth.decode_token(token), '42')

    def test_token_payload(self):
        """the payload is exactly the user id: no expiry, nothing else"""
        token = self.auth.issue_token(7)
        payload = jwt.decode(token, 'not-the-real-secret', algorithms=['HS256'])
        self.assertEqual(payload, {'userId': '7'})

    def test_token_other_secret(self):
        """a token signed with some other secret is refused"""
        token = AuthService('some-other-secret').issue_token(1)
        with self.assertRaises(AuthenticationError):
            self.auth.decode_token(token)

    def test_token_tampered(self):
        token = self.auth.issue_token(1)
        header, payload, signature = token.split('.')
        forged = jwt.encode({'userId': '2'}, 'guess', algorithm='HS256').split('.')[1]
        with self.assertRaises(AuthenticationError):
            self.auth.decode_token('.'.join((header, forged, signature)))

    def test_token_garbage(self):
        with self.assertRaises(AuthenticationError):
            self.auth.decode_token('ArgleBargle')

    def test_token_without_user_id(self):
        token = jwt.encode({'user': '1'}, 'not-the-real-secret', algorithm='HS256')
        with self.assertRaises(AuthenticationError):
            self.auth.decode_token(token)

    def test_secret_required(self):
        with self.assertRaises(ImproperlyConfigured):
            AuthService('')


class ResolveCallerTests(TestCase):
    def setUp(self):
        self.auth = AuthService('not-the-real-secret')
        self.user = create_test_user()

    def test_resolve_caller_valid(self):
        """a valid 'Bearer' Authorization header identifies the user"""
        token = self.auth.issue_token(self.user.pk)
        context = context_with_auth('Bearer {}'.format(token))
        self.assertEqual(self.auth.resolve_caller_id(context), str(self.user.pk))
        self.assertEqual(self.auth.resolve_caller(context), self.user)

    def test_resolve_caller_missing_or_malformed(self):
        """no header, a header that isn't 'Bearer <token>', or no request META at all, all fail"""
        token = self.auth.issue_token(self.user.pk)
        for auth in (None, '', 'ArgleBargle', 'Bearer', 'Bearer ', 'Basic {}'.format(token),
                     'bearer {}'.format(token)):
            with self.subTest(auth=auth):
                with self.assertRaises(AuthenticationError):
                    self.auth.resolve_caller_id(context_with_auth(auth))
        with self.assertRaises(AuthenticationError):
            self.auth.resolve_caller_id(object())

    def test_resolve_caller_wrong_token(self):
        with self.assertRaises(AuthenticationError):
            self.auth.resolve_caller_id(context_with_auth('Bearer AbDbAbDbAbDbA'))

    def test_resolve_caller_deleted_user(self):
        """a properly signed token for a user who is gone authenticates nobody"""
        context = context_with_auth('Bearer {}'.format(self.auth.issue_token(self.user.pk)))
        self.user.delete()
        with self.assertRaises(AuthenticationError):
            self.auth.resolve_caller(context)


# ========== signup and login tests ==========

class SignupLoginServiceTests(TestCase):
    def setUp(self):
        self.auth = AuthService('not-the-real-secret')

    def test_signup_then_login(self):
        """signup and a later login both give tokens naming the new user"""
        session1 = self.auth.signup(email='a@x.com', password='pw1', name='A')
        session2 = self.auth.login(email='a@x.com', password='pw1')
        self.assertEqual(session1.user.pk, session2.user.pk)
        self.assertEqual(self.auth.decode_token(session1.token), str(session1.user.pk))
        self.assertEqual(self.auth.decode_token(session2.token),
                         self.auth.decode_token(session1.token))

    def test_password_is_hashed(self):
        session = self.auth.signup(email='a@x.com', password='pw1', name='A')
        user = UserModel.objects.get(pk=session.user.pk)
        self.assertNotEqual(user.password, 'pw1')
        self.assertNotIn('pw1', user.password)
        self.assertTrue(user.password.startswith('bcrypt_sha256$'))
        self.assertTrue(check_password('pw1', user.password))

    def test_same_password_different_hashes(self):
        """hashes are salted"""
        user1 = self.auth.signup(email='a@x.com', password='pw1', name='A').user
        user2 = self.auth.signup(email='b@x.com', password='pw1', name='B').user
        self.assertNotEqual(user1.password, user2.password)

    def test_signup_duplicate_email(self):
        self.auth.signup(email='a@x.com', password='pw1', name='A')
        with self.assertRaises(ValidationError) as cm:
            self.auth.signup(email='a@x.com', password='pw2', name='Another A')
        self.assertIn('already exists', cm.exception.message)
        self.assertEqual(UserModel.objects.filter(email='a@x.com').count(), 1)

    def test_signup_invalid_email(self):
        with self.assertRaises(ValidationError) as cm:
            self.auth.signup(email='not an email', password='pw1', name='A')
        self.assertIn('email', cm.exception.message)
        self.assertFalse(UserModel.objects.exists())

    def test_login_unknown_email(self):
        with self.assertRaises(NotFoundError) as cm:
            self.auth.login(email='nobody@x.com', password='pw1')
        self.assertEqual(cm.exception.message, 'Could not find user with email: nobody@x.com')

    def test_login_wrong_password(self):
        self.auth.signup(email='a@x.com', password='pw1', name='A')
        with self.assertRaises(AuthenticationError) as cm:
            self.auth.login(email='a@x.com', password='pw2')
        self.assertEqual(cm.exception.message, 'Invalid password')

    def test_login_upgrades_old_hash(self):
        """a password hashed with an older hasher is rehashed with the current one at login"""
        user = UserModel.objects.create(name='Old', email='old@x.com',
                                        password=make_password('pw1', hasher='pbkdf2_sha256'))
        self.auth.login(email='old@x.com', password='pw1')
        user.refresh_from_db()
        self.assertTrue(user.password.startswith('bcrypt_sha256$'))
        self.assertTrue(check_password('pw1', user.password))


# ========== Relay Node tests ==========

class RelayNodeTests(TestCase):
    """Test that model nodes can be retreived via the Relay Node interface."""
    def test_node_for_user(self):
        user = create_test_user()
        user_gid = Node.to_global_id('User', user.pk)
        query = '''
          query {
            node(id: "%s") {
              id
              ...on User {
                name
                email
              }
            }
          }
        ''' % user_gid
        expected = {
          'node': {
            'id': user_gid,
            'name': user.name,
            'email': user.email,
          }
        }
        schema = graphene.Schema(query=Query)
        result = schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))

    def test_user_has_no_password_field(self):
        query = '''
          query {
            __type(name: "User") {
              fields { name }
            }
          }
        '''
        schema = graphene.Schema(query=Query)
        result = schema.execute(query)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        names = [f['name'] for f in result.data['__type']['fields']]
        self.assertIn('email', names)
        self.assertNotIn('password', names)


# ========== signup mutation tests ==========

class SignupTests(TestCase):
    def setUp(self):
        self.query = '''
          mutation SignupMutation($email: String!, $password: String!, $name: String!) {
            signup(email: $email, password: $password, name: $name) {
              token
              user { name email }
            }
          }
        '''
        self.variables = {
            'email': 'kirk@example.com',
            'password': 'abc123',
            'name': 'Jim Kirk',
        }
        self.schema = graphene.Schema(query=Query, mutation=Mutation)

    def test_signup(self):
        """sucessfully sign up a user"""
        result = self.schema.execute(self.query, variable_values=self.variables)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        token = result.data['signup']['token']
        self.assertEqual(result.data['signup']['user'],
                         {'name': 'Jim Kirk', 'email': 'kirk@example.com'})
        # check that the user was created properly
        user = UserModel.objects.get(email='kirk@example.com')
        self.assertEqual(user.name, 'Jim Kirk')
        self.assertNotEqual(user.password, 'abc123')
        self.assertEqual(get_auth_service().decode_token(token), str(user.pk))

    def test_signup_duplicate(self):
        """should not be able to create two users with the same email"""
        result = self.schema.execute(self.query, variable_values=self.variables)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        # now try to create a second one
        self.variables['name'] = 'Just Spock to Humans'
        self.variables['password'] = '26327790.8685354193060378'
        # -- email address stays the same
        result = self.schema.execute(self.query, variable_values=self.variables)
        self.assertIsNotNone(result.errors,
                             msg='Creating user with duplicate email should have failed')
        self.assertIn('already exists', result.errors[0].message)
        self.assertEqual(error_codes(result.errors), ['BAD_USER_INPUT'])
        expected = { 'signup': None } # empty result
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))
        self.assertEqual(UserModel.objects.count(), 1)


# ========== login mutation tests ==========

class LoginTests(TestCase):
    def setUp(self):
        self.user = create_test_user()
        self.query = '''
          mutation LoginMutation($email: String!, $password: String!) {
            login(email: $email, password: $password) {
              token
              user { name }
            }
          }
        '''
        self.schema = graphene.Schema(query=Query, mutation=Mutation)

    def test_login(self):
        """normal user login"""
        variables = {'email': self.user.email, 'password': 'abc123'}
        expected = {
            'login': {
                'token': 'REDACTED',
                'user': {
                    'name': self.user.name,
                }
            }
        }
        result = self.schema.execute(self.query, variable_values=variables)
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        try:
            token = result.data['login']['token']
            result.data['login']['token'] = 'REDACTED'
        except KeyError:
            raise Exception('malformed mutation result')
        self.assertEqual(get_auth_service().decode_token(token), str(self.user.pk))
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))

    def test_login_not_found(self):
        """unsuccessful login: user not found"""
        variables = {
            'email': 'xxx' + self.user.email, # unknown email address
            'password': 'irrelevant',
        }
        expected = {'login': None} # empty result
        result = self.schema.execute(self.query, variable_values=variables)
        self.assertIsNotNone(result.errors,
                             msg='Login of user with unknown email should have failed')
        self.assertIn('Could not find user with email', result.errors[0].message)
        self.assertIsInstance(result.errors[0].original_error, NotFoundError)
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))

    def test_login_bad_password(self):
        """unsuccessful login: incorrect password"""
        variables = {
            'email': self.user.email,
            'password': 'xxxabc123', # incorrect password
        }
        expected = {'login': None} # empty result
        result = self.schema.execute(self.query, variable_values=variables)
        self.assertIsNotNone(result.errors,
                             msg='Login of user with incorrect password should have failed')
        self.assertEqual(result.errors[0].message, 'Invalid password')
        self.assertEqual(error_codes(result.errors), ['UNAUTHENTICATED'])
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))


# ========== me query tests ==========

class MeTests(TestCase):
    def setUp(self):
        self.user = create_test_user()
        self.query = '''
          query {
            me { name email }
          }
        '''
        self.schema = graphene.Schema(query=Query)

    def test_me(self):
        result = self.schema.execute(self.query, context_value=context_with_token(self.user))
        self.assertIsNone(result.errors, msg=format_graphql_errors(result.errors))
        expected = {'me': {'name': self.user.name, 'email': self.user.email}}
        self.assertEqual(result.data, expected, msg='\n'+repr(expected)+'\n'+repr(result.data))

    def test_me_not_logged_in(self):
        result = self.schema.execute(self.query, context_value=context_with_auth(None))
        self.assertIsNotNone(result.errors, msg='me should have failed: no auth token')
        self.assertEqual(error_codes(result.errors), ['UNAUTHENTICATED'])
        self.assertEqual(result.data, {'me': None})
