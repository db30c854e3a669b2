from django.db import models


# A simple User model rather than Django's auth.User, which would saddle the schema with a
# 'username' field where the front end expects 'name'. Passwords are stored as Django password
# hashes (see users/hashers.py); sessions are stateless signed tokens (see users/auth.py), so
# nothing about a session lives in this table.

class UserModel(models.Model):
    name = models.CharField(max_length=150)
    password = models.CharField(max_length=128)
    email = models.EmailField(unique=True)

    def __str__(self):
        return self.email
