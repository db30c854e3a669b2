from django.conf import settings
from django.urls import path
from django.views.decorators.csrf import csrf_exempt

from graphene_django.views import GraphQLView


# Clients authenticate with a bearer token, not a session cookie, so there is no CSRF exposure.
urlpatterns = [
    path('graphql/', csrf_exempt(GraphQLView.as_view(graphiql=settings.DEBUG))),
]
