from __future__ import annotations

import base64
import logging
from email.message import EmailMessage as MimeMessage
from typing import Any, Dict, List, Optional, Sequence

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gmail_autoreply.models.email_message import EmailThread
from gmail_autoreply.services.auth_service import AuthService

LOGGER = logging.getLogger(__name__)
THREAD_HEADERS: Sequence[str] = ("From", "To", "Subject", "Message-ID", "References")


class GmailService:
    """Wrapper around the Gmail API for the operations we need."""

    def __init__(self, user_id: str, auth_service: AuthService | None = None, client: Any = None):
        self._user_id = user_id
        if client is None:
            if auth_service is None:
                raise ValueError("Either an auth service or a Gmail client is required")
            creds = auth_service.authenticate()
            client = build("gmail", "v1", credentials=creds, cache_discovery=False)
        self._client = client

    @property
    def user_id(self) -> str:
        return self._user_id

    def list_thread_ids(self, query: str) -> List[str]:
        thread_ids: List[str] = []
        page_token: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"userId": self.user_id, "q": query}
            if page_token:
                params["pageToken"] = page_token
            try:
                response = self._client.users().threads().list(**params).execute()
            except HttpError as exc:
                LOGGER.error("Failed to list threads for %r: %s", query, exc)
                raise
            thread_ids.extend(item["id"] for item in response.get("threads", []) or [])
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        LOGGER.debug("Query %r matched %s thread(s)", query, len(thread_ids))
        return thread_ids

    def get_thread(self, thread_id: str) -> EmailThread:
        response = (
            self._client.users()
            .threads()
            .get(userId=self.user_id, id=thread_id, format="metadata", metadataHeaders=list(THREAD_HEADERS))
            .execute()
        )
        return EmailThread.from_api(response)

    def send_message(self, message: MimeMessage, thread_id: str | None = None) -> Dict:
        raw = base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")
        body: Dict[str, Any] = {"raw": raw}
        if thread_id:
            body["threadId"] = thread_id
        response = self._client.users().messages().send(userId=self.user_id, body=body).execute()
        LOGGER.debug("Sent message %s in thread %s", response.get("id"), thread_id)
        return response

    def apply_labels(self, message_id: str, labels_to_add: Sequence[str]) -> Dict:
        if not labels_to_add:
            LOGGER.debug("No labels supplied for message %s", message_id)
            return {}
        body = {"addLabelIds": list(labels_to_add)}
        response = (
            self._client.users()
            .messages()
            .modify(userId=self.user_id, id=message_id, body=body)
            .execute()
        )
        LOGGER.debug("Applied labels %s to message %s", labels_to_add, message_id)
        return response

    def find_label_id(self, label_name: str) -> Optional[str]:
        for label in self._list_labels():
            if label["name"].lower() == label_name.lower():
                return label["id"]
        return None

    def ensure_label(self, label_name: str) -> str:
        label_id = self.find_label_id(label_name)
        if label_id:
            LOGGER.debug("Label %s already exists as %s", label_name, label_id)
            return label_id
        body = {"name": label_name, "labelListVisibility": "labelShow", "messageListVisibility": "show"}
        response = self._client.users().labels().create(userId=self.user_id, body=body).execute()
        LOGGER.info("Created label %s with id %s", label_name, response["id"])
        return response["id"]

    def _list_labels(self) -> List[Dict]:
        response = self._client.users().labels().list(userId=self.user_id).execute()
        return response.get("labels", [])
