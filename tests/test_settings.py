import pytest

from restmode.core.settings import Settings, SettingsError, SettingsStore
from restmode.data.storage import Storage


def test_defaults_match_original_preferences() -> None:
    settings = Settings()

    assert settings.work_duration_seconds == 3600
    assert settings.short_break_seconds == 30
    assert settings.long_break_seconds == 180
    assert settings.long_break_interval == 3
    assert settings.countdown_seconds == 5
    assert settings.pause_after_seconds == 60
    assert settings.reset_after_seconds == 300
    settings.validate()


@pytest.mark.parametrize(
    "changes",
    [
        {"work_duration_minutes": 0},
        {"short_break_seconds": -5},
        {"long_break_interval": 0},
        {"countdown_seconds": 0},
        {"work_duration_minutes": "60"},
        {"pause_on_idle": 1},
        {"long_break_seconds": True},
        {"snooze_minutes": 5},
    ],
)
def test_invalid_changes_are_rejected(changes: dict) -> None:
    with pytest.raises(SettingsError):
        Settings().with_changes(**changes)


def test_from_mapping_keeps_defaults_for_bad_values() -> None:
    settings = Settings.from_mapping(
        {"work_duration_minutes": 45, "short_break_seconds": 0, "unknown": 1, "hide_skip_button": True}
    )

    assert settings.work_duration_minutes == 45
    assert settings.short_break_seconds == 30
    assert settings.hide_skip_button is True
    assert Settings.from_mapping("garbage") == Settings()


def test_store_emits_only_changed_keys() -> None:
    store = SettingsStore()
    events = []
    store.subscribe(lambda key, value: events.append((key, value)))

    store.update(work_duration_minutes=30, countdown_enabled=True)
    store.save_setting("hide_skip_button", True)

    assert events == [("work_duration_minutes", 30), ("hide_skip_button", True)]
    assert store.current.work_duration_minutes == 30


def test_rejected_change_leaves_settings_untouched() -> None:
    store = SettingsStore()

    with pytest.raises(SettingsError):
        store.save_setting("work_duration_minutes", -1)

    assert store.current == Settings()


def test_settings_persist_across_stores(tmp_path) -> None:
    storage = Storage(tmp_path / "restmode.db")
    storage.init_db()

    store = SettingsStore()
    store.load_from_storage(storage)
    store.update(work_duration_minutes=20, long_breaks_enabled=False)

    again = SettingsStore()
    again.load_from_storage(storage)
    assert again.current.work_duration_minutes == 20
    assert again.current.long_breaks_enabled is False
    assert storage.load_preferences()["work_duration_minutes"] == 20


def test_reset_to_defaults_emits_and_persists(tmp_path) -> None:
    storage = Storage(tmp_path / "restmode.db")
    storage.init_db()
    store = SettingsStore()
    store.load_from_storage(storage)
    store.update(countdown_seconds=10)
    events = []
    store.subscribe(lambda key, value: events.append(key))

    store.reset_to_defaults()

    assert events == ["countdown_seconds"]
    assert storage.load_preferences()["countdown_seconds"] == 5
