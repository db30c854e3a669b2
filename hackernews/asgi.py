import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hackernews.settings')

# Queries and mutations over HTTP. A websocket transport for subscriptions can mount alongside
# this and drive hackernews.schema.schema.subscribe().
application = get_asgi_application()
