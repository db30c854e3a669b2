from functools import partial

from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from hackernews.pubsub import CREATED, DELETED, UPDATED, ChangeEvent, encode_event, publish
from links.models import LinkModel, VoteModel


# Subscribers only hear about changes that were committed. Events are encoded right away, while
# a deleted instance still has its pk.

@receiver(post_save, sender=LinkModel)
@receiver(post_save, sender=VoteModel)
def publish_saved(sender, instance, created, update_fields=None, **kwargs):
    event = ChangeEvent(
        sender=sender,
        mutation=CREATED if created else UPDATED,
        pk=instance.pk,
        node=instance,
        updated_fields=sorted(update_fields) if update_fields else None,
        previous_values=None,
    )
    transaction.on_commit(partial(publish, sender, encode_event(event)))


@receiver(post_delete, sender=LinkModel)
@receiver(post_delete, sender=VoteModel)
def publish_deleted(sender, instance, **kwargs):
    event = ChangeEvent(sender=sender, mutation=DELETED, pk=instance.pk, node=None,
                        updated_fields=None, previous_values=instance)
    transaction.on_commit(partial(publish, sender, encode_event(event)))
