from sqlalchemy import inspect

from app.models.listing import Listing
from app.models.user import User

# Tables owned by the wider marketplace; the chat tables start out missing
MARKETPLACE_TABLES = [User.__table__, Listing.__table__]


def table_names(engine):
    return set(inspect(engine).get_table_names())


class FakeResponse:

    def __init__(self, status_code, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("No JSON")
        return self._body


class FakeSession:
    """Records posts and answers with queued responses; the last one repeats"""

    def __init__(self, response=None, error=None):
        self.headers = {}
        self.responses = [response]
        self.error = error
        self.posts = []

    def queue(self, response):
        self.responses.append(response)

    def post(self, url, json=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    def close(self):
        pass
