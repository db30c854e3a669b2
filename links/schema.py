# howtographql-graphene-tutorial-fixed -- links/schema.py
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

import django_filters
from django.db.models import Q

import graphene
from graphene import ObjectType
from graphene.relay import Node
from graphene_django import DjangoObjectType

from hackernews import pubsub
from hackernews.errors import ValidationError
from links.models import LinkModel, VoteModel
from links.votes import get_vote_guard
from users.schema import User


# ========== Vote ==========

class Vote(DjangoObjectType):
    class Meta:
        model = VoteModel
        interfaces = (Node, )
        fields = ('id', 'link', 'user', 'created_at')

    link = graphene.Field(lambda: Link, required=True)
    user = graphene.Field(User, required=True)


class CreateVote(graphene.Mutation):
    # mutation VoteMutation($linkId: ID!) {
    #   vote(linkId: $linkId) {
    #     id
    #     link {
    #       votes { user { id } }
    #     }
    #     user { id }
    #   }
    # }
    # example variables: { linkId: "TGluazoy" }

    class Arguments:
        link_id = graphene.ID(required=True)

    Output = Vote

    @staticmethod
    def mutate(root, info, link_id):
        return get_vote_guard().vote(info.context, link_id)


# ========== Link ==========

class Link(DjangoObjectType):
    class Meta:
        model = LinkModel
        interfaces = (Node, )
        fields = ('id', 'url', 'description', 'created_at', 'posted_by')

    posted_by = graphene.Field(User, required=True)
    # A plain list, as the front end expects, rather than the Relay connection graphene-django
    # would otherwise generate for a reverse foreign key.
    votes = graphene.List(graphene.NonNull(Vote), required=True)

    def resolve_votes(self, info):
        return self.votes.all()


class LinkOrderBy(graphene.Enum):
    """This provides the schema's LinkOrderBy Enum type, for ordering the feed."""
    # The left-hand side is the Enum value in the schema, the right-hand side is the Django
    # order_by() argument it stands for.
    createdAt_ASC = 'created_at'
    createdAt_DESC = '-created_at'
    description_ASC = 'description'
    description_DESC = '-description'
    id_ASC = 'id'
    id_DESC = '-id'
    url_ASC = 'url'
    url_DESC = '-url'


class LinkFilterSet(django_filters.FilterSet):
    """Narrows the feed to links whose url or description contains the search text."""
    search = django_filters.CharFilter(method='filter_search')

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(url__icontains=value) | Q(description__icontains=value))


class Feed(ObjectType):
    links = graphene.List(graphene.NonNull(Link), required=True)
    count = graphene.Int(required=True)


class CreateLink(graphene.Mutation):
    # mutation PostMutation($url: String!, $description: String!) {
    #   post(url: $url, description: $description) {
    #     id
    #     createdAt
    #     url
    #     description
    #     postedBy { id }
    #   }
    # }
    # The caller must send 'Authorization: Bearer <token>', with a token from signup or login.

    class Arguments:
        url = graphene.String(required=True)
        description = graphene.String(required=True)

    Output = Link

    @staticmethod
    def mutate(root, info, url, description):
        return get_vote_guard().post(info.context, url, description)


# ========== subscriptions ==========

class MutationType(graphene.Enum):
    CREATED = 'CREATED'
    UPDATED = 'UPDATED'
    DELETED = 'DELETED'


def subscribed_kinds(mutation_in):
    # Only creations unless asked otherwise. The back end the front-end tutorial was written against
    # sent every kind of change to 'newLink' subscribers, which its own authors called a bug.
    if mutation_in is None:
        return (pubsub.CREATED, )
    if not mutation_in:
        raise ValidationError('mutationIn must name at least one of CREATED, UPDATED, DELETED')
    return tuple(m.value for m in mutation_in)


# Relations fetched along with each subscription payload's node and previous values, deep enough
# for the front end's newLink and newVote subscriptions.
LINK_RELATED = ('posted_by', 'votes__user')
VOTE_RELATED = ('user', 'link__posted_by', 'link__votes__user')


class LinkSubscriptionPayload(ObjectType):
    mutation = graphene.Field(MutationType, required=True)
    node = graphene.Field(Link)
    updated_fields = graphene.List(graphene.NonNull(graphene.String))
    previous_values = graphene.Field(Link)


class VoteSubscriptionPayload(ObjectType):
    mutation = graphene.Field(MutationType, required=True)
    node = graphene.Field(Vote)
    updated_fields = graphene.List(graphene.NonNull(graphene.String))
    previous_values = graphene.Field(Vote)


# ========== schema structure ==========

class Query(object):
    node = Node.Field()
    feed = graphene.Field(
        Feed,
        required=True,
        filter=graphene.String(),
        skip=graphene.Int(),
        first=graphene.Int(),
        order_by=graphene.Argument(LinkOrderBy),
    )

    def resolve_feed(self, info, filter=None, skip=None, first=None, order_by=None):
        if (skip is not None and skip < 0) or (first is not None and first < 0):
            raise ValidationError('skip and first must not be negative')
        qs = LinkModel.objects.all()
        if filter:
            qs = LinkFilterSet(data={'search': filter}, queryset=qs).qs
        # graphene hands us the LinkOrderBy member; its value is the order_by() argument
        qs = qs.order_by(order_by.value if order_by else 'id')
        count = qs.count()
        start = skip or 0
        if first is not None:
            qs = qs[start:start + first]
        elif start:
            qs = qs[start:]
        return Feed(links=list(qs), count=count)


class Mutation(object):
    post = CreateLink.Field()
    vote = CreateVote.Field()


class Subscription(object):
    # subscription {
    #   newLink {
    #     mutation
    #     node { id url description }
    #   }
    # }
    # The root value handed to these fields is the hackernews.pubsub.ChangeEvent itself, so the
    # payload types above resolve straight from its attributes.

    new_link = graphene.Field(LinkSubscriptionPayload,
                              mutation_in=graphene.List(graphene.NonNull(MutationType)))
    new_vote = graphene.Field(VoteSubscriptionPayload,
                              mutation_in=graphene.List(graphene.NonNull(MutationType)))

    async def subscribe_new_link(root, info, mutation_in=None):
        return await pubsub.subscribe(LinkModel, subscribed_kinds(mutation_in), LINK_RELATED)

    async def subscribe_new_vote(root, info, mutation_in=None):
        return await pubsub.subscribe(VoteModel, subscribed_kinds(mutation_in), VOTE_RELATED)
