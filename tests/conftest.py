from __future__ import annotations

import base64
import email
from typing import Dict, List, Optional

import pytest

from gmail_autoreply.services.gmail_service import GmailService

LABEL_ID = "Label_42"


class _Request:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


class FakeGmail:
    """In-memory stand-in for the ``googleapiclient`` Gmail resource."""

    def __init__(self):
        self.threads_by_id: Dict[str, Dict] = {}
        self.label_records: List[Dict] = [{"id": "INBOX", "name": "INBOX"}]
        self.sent: List[Dict] = []
        self.modified: List[Dict] = []
        self.list_calls: List[Dict] = []
        self.list_error: Optional[Exception] = None
        self.get_errors: Dict[str, Exception] = {}
        self.modify_error: Optional[Exception] = None
        self.page_size: Optional[int] = None

    # resource chain
    def users(self):
        return self

    def threads(self):
        return _Threads(self)

    def messages(self):
        return _Messages(self)

    def labels(self):
        return _Labels(self)

    # helpers
    def add_thread(self, thread_id: str, messages: List[Dict]) -> None:
        self.threads_by_id[thread_id] = {"id": thread_id, "messages": messages}

    def sent_mime(self, index: int = 0):
        raw = self.sent[index]["body"]["raw"]
        return email.message_from_bytes(base64.urlsafe_b64decode(raw))


class _Threads:
    def __init__(self, fake: FakeGmail):
        self._fake = fake

    def list(self, userId, q, pageToken=None):
        def run():
            self._fake.list_calls.append({"userId": userId, "q": q, "pageToken": pageToken})
            if self._fake.list_error is not None:
                error, self._fake.list_error = self._fake.list_error, None
                raise error
            ids = list(self._fake.threads_by_id)
            if not self._fake.page_size:
                return {"threads": [{"id": tid} for tid in ids]}
            start = int(pageToken or 0)
            chunk = ids[start : start + self._fake.page_size]
            response = {"threads": [{"id": tid} for tid in chunk]}
            if start + self._fake.page_size < len(ids):
                response["nextPageToken"] = str(start + self._fake.page_size)
            return response

        return _Request(run)

    def get(self, userId, id, format=None, metadataHeaders=None):  # noqa: A002
        def run():
            if id in self._fake.get_errors:
                raise self._fake.get_errors[id]
            return self._fake.threads_by_id[id]

        return _Request(run)


class _Messages:
    def __init__(self, fake: FakeGmail):
        self._fake = fake

    def send(self, userId, body):
        def run():
            message_id = f"sent-{len(self._fake.sent) + 1}"
            self._fake.sent.append({"userId": userId, "body": body, "id": message_id})
            thread = self._fake.threads_by_id.get(body.get("threadId"))
            if thread is not None:
                thread["messages"].append({"id": message_id, "threadId": thread["id"], "labelIds": ["SENT"]})
            return {"id": message_id, "threadId": body.get("threadId")}

        return _Request(run)

    def modify(self, userId, id, body):  # noqa: A002
        def run():
            if self._fake.modify_error is not None:
                raise self._fake.modify_error
            self._fake.modified.append({"id": id, "body": body})
            for thread in self._fake.threads_by_id.values():
                for message in thread["messages"]:
                    if message["id"] == id:
                        message.setdefault("labelIds", []).extend(body.get("addLabelIds", []))
            return {"id": id}

        return _Request(run)


class _Labels:
    def __init__(self, fake: FakeGmail):
        self._fake = fake

    def list(self, userId):
        return _Request(lambda: {"labels": list(self._fake.label_records)})

    def create(self, userId, body):
        def run():
            label = {"id": f"Label_{len(self._fake.label_records)}", "name": body["name"]}
            self._fake.label_records.append(label)
            return label

        return _Request(run)


def message(message_id: str, thread_id: str, to: Optional[str] = "John Doe <john@example.com>", labels=None, **headers):
    items = []
    if to is not None:
        items.append({"name": "To", "value": to})
    items.append({"name": "Subject", "value": headers.pop("subject", "Hello")})
    for name, value in headers.items():
        items.append({"name": name.replace("_", "-"), "value": value})
    return {
        "id": message_id,
        "threadId": thread_id,
        "labelIds": list(labels or ["INBOX", "UNREAD"]),
        "payload": {"headers": items},
    }


@pytest.fixture
def fake_gmail() -> FakeGmail:
    return FakeGmail()


@pytest.fixture
def gmail(fake_gmail: FakeGmail) -> GmailService:
    return GmailService("me", client=fake_gmail)
