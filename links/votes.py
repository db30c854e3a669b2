# hackernews-graphql-backend -- links/votes.py
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
from functools import lru_cache

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from graphql_relay import from_global_id

from hackernews.errors import ConflictError, NotFoundError, ValidationError
from links.models import LinkModel, VoteModel
from users.auth import get_auth_service

logger = logging.getLogger(__name__)


def get_link_from_global_id(link_id):
    """Return the LinkModel named by a Relay global id like 'TGluazox' ('Link:1')."""
    # malformed ids decode to an empty type name rather than raising
    type_name, pk = from_global_id(link_id)
    if type_name != 'Link':
        raise NotFoundError('Could not find link: {}'.format(link_id))
    try:
        return LinkModel.objects.get(pk=pk)
    except (LinkModel.DoesNotExist, ValueError) as e:
        raise NotFoundError('Could not find link: {}'.format(link_id)) from e


class VoteGuard(object):
    """Posting links and voting on them, on behalf of the user identified by the request."""

    def __init__(self, auth):
        self.auth = auth

    def post(self, context, url, description):
        user = self.auth.resolve_caller(context)
        link = LinkModel(url=url, description=description, posted_by=user)
        try:
            link.full_clean()
        except DjangoValidationError as e:
            raise ValidationError.from_django(e) from e
        with transaction.atomic():
            link.save()
        logger.info('user %s posted link %s', user.pk, link.pk)
        return link

    def vote(self, context, link_id):
        user = self.auth.resolve_caller(context)
        link = get_link_from_global_id(link_id)
        if VoteModel.objects.filter(user=user, link=link).exists():
            logger.info('user %s already voted for link %s', user.pk, link.pk)
            raise ConflictError('Already voted for link: {}'.format(link_id))
        try:
            with transaction.atomic():
                vote = VoteModel.objects.create(user=user, link=link)
        except IntegrityError as e:
            # a concurrent vote got in between the check above and this insert; the unique
            # constraint on (user, link) turned it away
            logger.info('user %s lost a duplicate vote race for link %s', user.pk, link.pk)
            raise ConflictError('Already voted for link: {}'.format(link_id)) from e
        logger.info('user %s voted for link %s', user.pk, link.pk)
        return vote


@lru_cache(maxsize=None)
def get_vote_guard():
    return VoteGuard(get_auth_service())
