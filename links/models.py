from django.db import models


class LinkModel(models.Model):
    description = models.TextField(blank=True)
    url = models.URLField()
    created_at = models.DateTimeField(auto_now_add=True)
    posted_by = models.ForeignKey('users.UserModel', on_delete=models.CASCADE,
                                  related_name='links')


class VoteModel(models.Model):
    user = models.ForeignKey('users.UserModel', on_delete=models.CASCADE, related_name='votes')
    link = models.ForeignKey('links.LinkModel', on_delete=models.CASCADE, related_name='votes')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        # one vote per user per link, enforced by the database so that two concurrent votes can't
        # both get past the existence check in VoteGuard.vote()
        constraints = [
            models.UniqueConstraint(fields=['user', 'link'], name='unique_vote_per_user_and_link'),
        ]
