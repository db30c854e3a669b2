# howtographql-graphene-tutorial-fixed -- users/schema.py
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

import graphene
from graphene.relay import Node
from graphene_django import DjangoObjectType

from users.auth import get_auth_service
from users.models import UserModel


class User(DjangoObjectType):
    class Meta:
        model = UserModel
        interfaces = (Node, )
        # never 'password'
        fields = ('id', 'name', 'email')


class AuthPayload(graphene.ObjectType):
    """What signup and login return: a bearer token for the Authorization header, and its user."""
    token = graphene.String(required=True)
    user = graphene.Field(User, required=True)


class Query(object):
    me = graphene.Field(User)

    def resolve_me(self, info):
        return get_auth_service().resolve_caller(info.context)


class Signup(graphene.Mutation):
    # mutation SignupMutation($email: String!, $password: String!, $name: String!) {
    #   signup(email: $email, password: $password, name: $name) {
    #     token
    #     user { id }
    #   }
    # }
    # example variables: { email: "foo@bar.com", password: "abc123", name: "Foo Bar" }

    class Arguments:
        email = graphene.String(required=True)
        password = graphene.String(required=True)
        name = graphene.String(required=True)

    Output = AuthPayload

    @staticmethod
    def mutate(root, info, email, password, name):
        return get_auth_service().signup(email=email, password=password, name=name)


class Login(graphene.Mutation):
    # mutation LoginMutation($email: String!, $password: String!) {
    #   login(email: $email, password: $password) {
    #     token
    #     user { id name }
    #   }
    # }

    class Arguments:
        email = graphene.String(required=True)
        password = graphene.String(required=True)

    Output = AuthPayload

    @staticmethod
    def mutate(root, info, email, password):
        return get_auth_service().login(email=email, password=password)


class Mutation(object):
    signup = Signup.Field()
    login = Login.Field()
