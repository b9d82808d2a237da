"""
Settings synchronization — field merge, optimistic update with rollback, theme.
"""

import threading
from unittest.mock import MagicMock

import pytest

from archicalc import models
from archicalc.errors import AuthenticationRequired, StoreError
from archicalc.notifications import Notifier
from archicalc.preferences import (
    MARKET_DEFAULTS,
    Preferences,
    PreferencesUpdate,
    SettingsSync,
    ThemeApplier,
    merge_preferences,
)


def test_merge_takes_each_field_independently():
    merged = merge_preferences({"theme": None, "default_margin": 15})

    assert merged.theme == "light"
    assert merged.default_margin == 15
    assert merged.bdi_percent == 20
    assert merged.decimal_places == 2


def test_merge_keeps_falsy_values():
    merged = merge_preferences({"email_notifications": False, "decimal_places": 0})

    assert merged.email_notifications is False
    assert merged.decimal_places == 0


def test_merge_rejects_unknown_theme():
    assert merge_preferences({"theme": "solarized"}).theme == "light"
    assert merge_preferences({"theme": "dark"}).theme == "dark"


def test_merge_without_row_is_defaults():
    assert merge_preferences(None) == Preferences()


def test_anonymous_load_is_defaults_without_store_call(theme):
    store = MagicMock()
    sync = SettingsSync(store, Notifier(), theme)

    assert sync.load(None) == Preferences()
    store.select_user_settings.assert_not_called()


def test_load_merges_persisted_row(settings_sync, db, user_id):
    db.add(models.UserSettings(user_id=user_id, theme=None, default_margin=15, bdi_percent=27.5))
    db.commit()

    preferences = settings_sync.load(user_id)

    assert preferences.theme == "light"
    assert preferences.default_margin == 15
    assert preferences.bdi_percent == 27.5
    assert preferences.social_charges_percent == 88


def test_update_writes_only_changed_fields(settings_sync, db, user_id):
    settings_sync.load(user_id)

    settings_sync.update(user_id, PreferencesUpdate(default_margin=12.5))

    row = db.query(models.UserSettings).filter(models.UserSettings.user_id == user_id).one()
    assert row.default_margin == 12.5
    assert row.theme is None
    assert row.bdi_percent is None
    assert row.updated_at is not None
    assert settings_sync.preferences.default_margin == 12.5


def test_update_failure_rolls_back_and_reraises(theme):
    store = MagicMock()
    store.select_user_settings.return_value = {"default_margin": 18}
    store.upsert_user_settings.side_effect = StoreError("network down", "upsert user_settings")
    notifier = Notifier()
    sync = SettingsSync(store, notifier, theme)
    sync.load(4)
    before = sync.preferences

    with pytest.raises(StoreError):
        sync.update(4, PreferencesUpdate(default_margin=30, theme="dark"))

    assert sync.preferences == before
    assert sync.preferences.default_margin == 18
    assert notifier.pending()[-1].title == "Erro ao salvar configurações"
    assert theme.active_theme == "light"


def test_local_state_changes_before_the_write_returns(theme):
    seen = {}
    store = MagicMock()
    store.select_user_settings.return_value = None
    sync = SettingsSync(store, Notifier(), theme)

    def upsert(user_id, changes):
        seen["during_commit"] = sync.preferences.decimal_places
        return {}

    store.upsert_user_settings.side_effect = upsert
    sync.load(1)
    sync.update(1, PreferencesUpdate(decimal_places=4))

    assert seen["during_commit"] == 4
    store.upsert_user_settings.assert_called_once_with(1, {"decimal_places": 4})


def test_update_without_identity_raises_before_store_call(theme):
    store = MagicMock()
    sync = SettingsSync(store, Notifier(), theme)

    with pytest.raises(AuthenticationRequired):
        sync.update(None, PreferencesUpdate(theme="dark"))
    store.upsert_user_settings.assert_not_called()


def test_empty_update_is_a_noop(theme):
    store = MagicMock()
    sync = SettingsSync(store, Notifier(), theme)

    sync.update(1, PreferencesUpdate())
    store.upsert_user_settings.assert_not_called()


def test_theme_change_is_applied_after_successful_update(settings_sync, user_id, theme):
    settings_sync.load(user_id)
    assert theme.active_theme == "light"

    settings_sync.update(user_id, PreferencesUpdate(theme="dark"))
    assert theme.active_theme == "dark"


def test_system_theme_resolves_at_application_time(settings_sync, user_id):
    preference = {"value": "dark"}
    applier = ThemeApplier(lambda: preference["value"])
    settings_sync.theme = applier
    settings_sync.load(user_id)

    settings_sync.update(user_id, PreferencesUpdate(theme="system"))
    assert applier.active_theme == "dark"

    # Host preference flips later, not picked up until the next apply
    preference["value"] = "light"
    assert applier.active_theme == "dark"
    assert applier.apply("system") == "light"


def test_reset_market_defaults(settings_sync, db, user_id):
    settings_sync.load(user_id)
    settings_sync.update(user_id, PreferencesUpdate(bdi_percent=35, technical_hour_rate=220, default_margin=9))

    preferences = settings_sync.reset_market_defaults(user_id)

    for field, value in MARKET_DEFAULTS.items():
        assert getattr(preferences, field) == value
    assert preferences.default_margin == 9

    db.expire_all()
    row = db.query(models.UserSettings).filter(models.UserSettings.user_id == user_id).one()
    assert row.bdi_percent == MARKET_DEFAULTS["bdi_percent"]
    assert row.technical_hour_rate == MARKET_DEFAULTS["technical_hour_rate"]


def test_null_in_update_is_not_a_change():
    assert PreferencesUpdate(theme=None, default_margin=11).changes() == {"default_margin": 11}


def _blocking_store(field, value):
    """Store whose write of field=value waits for release, then fails. Other writes succeed."""
    entered = threading.Event()
    release = threading.Event()
    store = MagicMock()
    store.select_user_settings.return_value = None

    def upsert(user_id, changes):
        if changes.get(field) == value:
            entered.set()
            release.wait(5)
            raise StoreError("timeout", "upsert user_settings")
        return {}

    store.upsert_user_settings.side_effect = upsert
    return store, entered, release


def _run_failing_update(sync, update):
    errors = []

    def target():
        try:
            sync.update(1, update)
        except StoreError as e:
            errors.append(e)

    thread = threading.Thread(target=target)
    thread.start()
    return thread, errors


def test_failed_update_keeps_a_concurrent_successful_update(theme):
    store, entered, release = _blocking_store("bdi_percent", 30)
    sync = SettingsSync(store, Notifier(), theme)
    sync.load(1)

    thread, errors = _run_failing_update(sync, PreferencesUpdate(bdi_percent=30))
    assert entered.wait(5)
    sync.update(1, PreferencesUpdate(default_margin=15))
    release.set()
    thread.join(5)

    assert len(errors) == 1
    assert sync.preferences.default_margin == 15
    assert sync.preferences.bdi_percent == 20


def test_failed_update_does_not_revert_a_newer_value_of_the_same_field(theme):
    store, entered, release = _blocking_store("technical_hour_rate", 300)
    sync = SettingsSync(store, Notifier(), theme)
    sync.load(1)

    thread, errors = _run_failing_update(sync, PreferencesUpdate(technical_hour_rate=300))
    assert entered.wait(5)
    # Lands while the first write is still in flight
    sync.update(1, PreferencesUpdate(technical_hour_rate=180, bdi_percent=25))
    release.set()
    thread.join(5)

    assert len(errors) == 1
    assert sync.preferences.technical_hour_rate == 180
    assert sync.preferences.bdi_percent == 25
