from services.history_service import HistoryService
from utils.audio import assemble_wav


def _clip(n_samples: int = 24000):
    return assemble_wav(bytes(n_samples * 2))


def test_add_records_metadata(history):
    container = _clip(36000)

    item = history.add("Hola", "Kore", "Elena (Natural)", container)

    assert item.duration_seconds == 1.5
    assert item.duration_label == "00:01"
    assert item.size_bytes == container.size
    assert item.digest == container.digest
    assert history.get(item.id) == item
    assert history.get_audio(item.id) is container


def test_list_is_newest_first_and_limited(history):
    first = history.add("one", "Kore", "Elena", _clip())
    second = history.add("two", "Kore", "Elena", _clip())

    assert [i.id for i in history.list()] == [second.id, first.id]
    assert [i.id for i in history.list(limit=1)] == [second.id]


def test_oldest_item_is_dropped_when_full(history):
    items = [history.add(str(n), "Kore", "Elena", _clip()) for n in range(4)]

    assert len(history) == 3
    assert history.get(items[0].id) is None
    assert history.get_audio(items[0].id) is None
    assert history.get(items[3].id) is not None


def test_delete_and_clear(history):
    item = history.add("bye", "Zephyr", "Sofia", _clip())
    history.add("keep", "Zephyr", "Sofia", _clip())

    assert history.delete(item.id) is True
    assert history.delete(item.id) is False
    assert history.get_audio(item.id) is None
    assert len(history) == 1

    history.clear()
    assert history.list() == []


def test_default_cap_follows_settings(monkeypatch):
    monkeypatch.setattr("services.history_service.settings.history_max_items", 2)

    service = HistoryService()
    for n in range(3):
        service.add(str(n), "Kore", "Elena", _clip())

    assert service.max_items == 2
    assert len(service) == 2
