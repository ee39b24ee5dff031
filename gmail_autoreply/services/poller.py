from __future__ import annotations

import logging
from typing import List

from gmail_autoreply.services.gmail_service import GmailService

LOGGER = logging.getLogger(__name__)


def build_query(label_name: str) -> str:
    # multi-word label names are hyphenated in Gmail search syntax
    search_name = label_name.strip().replace(" ", "-")
    return f"in:inbox -label:{search_name} is:unread"


class Poller:
    """Find unread inbox threads that have not been auto-replied to yet."""

    def __init__(self, gmail: GmailService, label_name: str):
        self._gmail = gmail
        self.query = build_query(label_name)

    def poll(self) -> List[str]:
        thread_ids = self._gmail.list_thread_ids(self.query)
        LOGGER.info("Found %s unreplied thread(s)", len(thread_ids))
        return thread_ids
