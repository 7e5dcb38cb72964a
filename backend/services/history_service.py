"""
In-memory history of generated speech clips, newest first.

Holds the WAV container next to its metadata so a clip can be replayed or
downloaded again without another TTS round-trip. Capped at max_items;
the oldest clip is dropped first. Process-local, lost on restart.
"""
import logging
from typing import Dict, List, Optional

from config import settings
from models.audio import HistoryItem
from utils.audio import WavContainer, format_time

logger = logging.getLogger(__name__)


class HistoryService:
    """Single event-loop access only; no locking."""

    def __init__(self, max_items: Optional[int] = None):
        if max_items is None:
            max_items = settings.history_max_items
        self.max_items = max(1, max_items)
        self._items: List[HistoryItem] = []
        self._audio: Dict[str, WavContainer] = {}

    def add(self, text: str, voice_id: str, voice_name: str, container: WavContainer) -> HistoryItem:
        item = HistoryItem(
            text=text,
            voice_id=voice_id,
            voice_name=voice_name,
            duration_seconds=container.duration_seconds,
            duration_label=format_time(container.duration_seconds),
            size_bytes=container.size,
            digest=container.digest,
        )
        self._items.insert(0, item)
        self._audio[item.id] = container
        while len(self._items) > self.max_items:
            dropped = self._items.pop()
            self._audio.pop(dropped.id, None)
            logger.info("History full, dropped clip %s", dropped.id)
        return item

    def list(self, limit: int = 10) -> List[HistoryItem]:
        return self._items[:max(0, limit)]

    def get(self, item_id: str) -> Optional[HistoryItem]:
        return next((i for i in self._items if i.id == item_id), None)

    def get_audio(self, item_id: str) -> Optional[WavContainer]:
        return self._audio.get(item_id)

    def delete(self, item_id: str) -> bool:
        item = self.get(item_id)
        if item is None:
            return False
        self._items.remove(item)
        self._audio.pop(item_id, None)
        return True

    def clear(self) -> None:
        self._items.clear()
        self._audio.clear()

    def __len__(self) -> int:
        return len(self._items)


_history_service: Optional[HistoryService] = None


def get_history_service() -> HistoryService:
    """Lazy singleton; use as a FastAPI dependency: Depends(get_history_service)."""
    global _history_service
    if _history_service is None:
        _history_service = HistoryService()
    return _history_service
