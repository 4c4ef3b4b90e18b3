"""Merge of the server message log into the local transcript.

Only assistant messages written by a human agent are imported: bot replies
already reached the transcript through the send response. Duplicates are
detected by content because local and server messages share no id scheme.
"""
import logging
from typing import Awaitable, Callable, List, Sequence

from ..schemas import HistoryMessage
from .errors import TransportError
from .transcript import Message, Transcript

logger = logging.getLogger(__name__)


def merge_server_log(transcript: Transcript, server_log: Sequence[HistoryMessage]) -> List[Message]:
    """Apply one reconciliation step and return the messages appended.

    The cursor moves to the end of the observed log whatever survives the
    filters, so every log position is considered exactly once.
    """
    cursor = transcript.server_message_cursor
    if len(server_log) <= cursor:
        return []

    appended = []
    for candidate in server_log[cursor:]:
        if candidate.role != "assistant" or not candidate.is_manual:
            continue
        if transcript.contains_content(candidate.content):
            continue
        appended.append(transcript.append("assistant", candidate.content, is_manual=True))

    transcript.advance_cursor(len(server_log))
    return appended


class MessageReconciler:
    def __init__(self, fetch_log: Callable[[], Awaitable[Sequence[HistoryMessage]]]):
        self.fetch_log = fetch_log

    async def poll(self, transcript: Transcript, is_current: Callable[[], bool] = lambda: True) -> List[Message]:
        """Fetch the log and merge it. A failed fetch leaves the cursor alone.

        ``is_current`` is checked after the fetch; a log fetched for a session
        that has since rotated is dropped.
        """
        try:
            server_log = await self.fetch_log()
        except TransportError as exc:
            logger.debug("History poll failed: %s", exc)
            return []
        if not is_current():
            return []
        appended = merge_server_log(transcript, server_log)
        if appended:
            logger.info("Merged %d agent message(s) into the transcript", len(appended))
        return appended
