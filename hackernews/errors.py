# hackernews-graphql-backend -- hackernews/errors.py
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

from graphql.error import GraphQLError


# ========== error kinds ==========

# Resolvers raise these and graphql-core reports them in the 'errors' list of the result, with the
# offending field set to null. The 'code' extension lets a front end tell the kinds apart without
# parsing message text.

class HackernewsError(GraphQLError):
    """Base class for the errors our resolvers raise on purpose."""
    code = 'INTERNAL_SERVER_ERROR'

    def __init__(self, message):
        super().__init__(message, extensions={'code': self.code})


class AuthenticationError(HackernewsError):
    """Missing or invalid bearer token, or a wrong password."""
    code = 'UNAUTHENTICATED'


class NotFoundError(HackernewsError):
    code = 'NOT_FOUND'


class ConflictError(HackernewsError):
    """The record would duplicate one that already exists (e.g. a second vote)."""
    code = 'CONFLICT'


class ValidationError(HackernewsError):
    """The database layer rejected the record, e.g. a duplicate email on signup."""
    code = 'BAD_USER_INPUT'

    @classmethod
    def from_django(cls, exc):
        """Build one from a django.core.exceptions.ValidationError, keeping all of its messages."""
        if hasattr(exc, 'error_dict'):
            messages = []
            for field, errors in sorted(exc.message_dict.items()):
                for message in errors:
                    messages.append('{}: {}'.format(field, message))
        else:
            messages = exc.messages
        return cls(' '.join(messages))
