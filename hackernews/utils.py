# howtographql-graphene-tutorial-fixed -- <project>/utils.py
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

import traceback

from graphql.error import GraphQLError


# ========== graphql-core error reporting ==========

# graphql-core 3 catches every exception a resolver raises and hands it back in
# ExecutionResult.errors, wrapped in a GraphQLError that remembers the path and source location of
# the failing field. That is just what a client wants, but a failing test wants the traceback of
# whatever was raised, so format_graphql_errors() puts both into one string, suitable for the
# 'msg' argument of a unittest assertion.

def format_graphql_errors(errors):
    """Return a string with the usual exception traceback, plus some extra fields that GraphQL
    provides.
    """
    if not errors:
        return None
    text = []
    for i, e in enumerate(errors):
        text.append('GraphQL schema execution error [{}]:\n'.format(i))
        if isinstance(e, GraphQLError):
            text.append('message: {}\n'.format(e.message))
            for attr in ('locations', 'path', 'extensions'):
                value = getattr(e, attr, None)
                if value:
                    text.append('{}: {}\n'.format(attr, repr(value)))
            original = e.original_error
            if original is not None and original is not e:
                e = original
        if isinstance(e, BaseException):
            text.append(''.join(traceback.format_exception(type(e), e, e.__traceback__)))
        else:
            text.append(repr(e) + '\n')
    return ''.join(text)


def error_codes(errors):
    """Return the 'code' extensions of a list of GraphQL errors, e.g. ['CONFLICT']."""
    return [(e.extensions or {}).get('code') for e in errors or ()]
