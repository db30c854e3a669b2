from django.apps import AppConfig


class LinksConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'links'

    def ready(self):
        # connect the change-event receivers that feed the newLink and newVote subscriptions
        from links import signals  # noqa: F401
