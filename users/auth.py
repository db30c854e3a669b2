# hackernews-graphql-backend -- users/auth.py
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

import logging
from collections import namedtuple
from functools import lru_cache

import jwt

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.core.exceptions import ImproperlyConfigured
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from hackernews.errors import AuthenticationError, NotFoundError, ValidationError
from users.models import UserModel

logger = logging.getLogger(__name__)


# What signup and login hand back: the new session token, and the user it belongs to.
Session = namedtuple('Session', ['token', 'user'])


def get_authorization_header(context):
    """Return the raw HTTP Authorization header of a request, or None."""
    meta = getattr(context, 'META', None) or {}
    return meta.get('HTTP_AUTHORIZATION', None)


class AuthService(object):
    """Signs users up and in, and turns the bearer tokens it issues back into user ids.

    Tokens are HS256 JSON Web Tokens whose payload is exactly {"userId": "<pk>"}. There is no
    server-side session state, and tokens carry no expiry: a token stays valid until the signing
    secret changes.
    """
    algorithm = 'HS256'

    def __init__(self, secret):
        if not secret:
            raise ImproperlyConfigured('AuthService requires a non-empty signing secret.')
        self.secret = secret

    # ---------- tokens ----------

    def issue_token(self, user_id):
        return jwt.encode({'userId': str(user_id)}, self.secret, algorithm=self.algorithm)

    def decode_token(self, token):
        """Verify a token and return the user id it carries."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError as e:
            logger.warning('rejected bearer token: %s', e)
            raise AuthenticationError('Not authenticated') from e
        user_id = payload.get('userId')
        if not user_id:
            logger.warning('rejected bearer token: no userId claim')
            raise AuthenticationError('Not authenticated')
        return user_id

    def resolve_caller_id(self, context):
        """Return the user id from the 'Authorization: Bearer <token>' header of the request."""
        auth = get_authorization_header(context)
        if not auth:
            raise AuthenticationError('Not authenticated')
        scheme, _, token = auth.partition(' ')
        token = token.strip()
        if scheme != 'Bearer' or not token:
            raise AuthenticationError('Not authenticated')
        return self.decode_token(token)

    def resolve_caller(self, context):
        """Like resolve_caller_id(), but return the UserModel. A validly signed token for a user
        who no longer exists does not authenticate anyone.
        """
        user_id = self.resolve_caller_id(context)
        try:
            return UserModel.objects.get(pk=user_id)
        except (UserModel.DoesNotExist, ValueError) as e:
            logger.warning('bearer token names unknown user %r', user_id)
            raise AuthenticationError('Not authenticated') from e

    # ---------- signup and login ----------

    def signup(self, email, password, name):
        user = UserModel(name=name, email=email, password=make_password(password))
        try:
            user.full_clean()
        except DjangoValidationError as e:
            raise ValidationError.from_django(e) from e
        try:
            with transaction.atomic():
                user.save()
        except IntegrityError as e:
            # lost a race with another signup for the same email
            raise ValidationError('email: User model with this Email already exists.') from e
        logger.info('signed up user %s', user.pk)
        return Session(token=self.issue_token(user.pk), user=user)

    def login(self, email, password):
        try:
            user = UserModel.objects.get(email=email)
        except UserModel.DoesNotExist as e:
            raise NotFoundError('Could not find user with email: {}'.format(email)) from e

        def upgrade_hash(raw_password):
            # called by check_password() when the stored hash uses outdated parameters
            user.password = make_password(raw_password)
            user.save(update_fields=['password'])

        if not check_password(password, user.password, setter=upgrade_hash):
            logger.warning('invalid password for user %s', user.pk)
            raise AuthenticationError('Invalid password')
        logger.info('logged in user %s', user.pk)
        return Session(token=self.issue_token(user.pk), user=user)


@lru_cache(maxsize=None)
def get_auth_service():
    """Return the process-wide AuthService, built once from settings.APP_SECRET."""
    return AuthService(settings.APP_SECRET)
