"""Tests for the demo-mode settings transitions."""

from __future__ import annotations

from demo_mode import (
    MOCK_E3DC_IP,
    MOCK_PV_SURPLUS_OFF_URL,
    MOCK_PV_SURPLUS_ON_URL,
    MOCK_WALLBOX_IP,
    apply_demo_mode,
    is_mocked,
)
from models import DEFAULT_WALLBOX_IP, Settings

REAL_WALLBOX = "192.168.1.50"
REAL_E3DC = "192.168.1.60:5033"
REAL_ON_URL = "http://fhem.local:8083/fhem?cmd=set%20pv%20on"
REAL_OFF_URL = "http://fhem.local:8083/fhem?cmd=set%20pv%20off"


def real_settings(**overrides) -> Settings:
    values = dict(
        wallbox_ip=REAL_WALLBOX,
        e3dc_ip=REAL_E3DC,
        pv_surplus_on_url=REAL_ON_URL,
        pv_surplus_off_url=REAL_OFF_URL,
    )
    values.update(overrides)
    return Settings(**values)


def toggle(previous: Settings, demo: bool, **changes) -> Settings:
    """Simulate the UI echoing the current settings with a new flag."""
    incoming = previous.model_copy(update={"demo_mode": demo, **changes})
    return apply_demo_mode(previous, incoming)


# --- off -> off ---


def test_non_demo_settings_pass_through():
    previous = real_settings()
    incoming = real_settings(wallbox_ip="192.168.1.51", timezone="Europe/Vienna")

    assert apply_demo_mode(previous, incoming) == incoming


def test_input_is_not_mutated():
    incoming = real_settings(demo_mode=True)
    apply_demo_mode(real_settings(), incoming)
    assert incoming.wallbox_ip == REAL_WALLBOX
    assert incoming.wallbox_ip_backup is None


# --- off -> on ---


def test_enabling_backs_up_and_mocks_every_endpoint():
    result = toggle(real_settings(), True)

    assert result.wallbox_ip == MOCK_WALLBOX_IP
    assert result.wallbox_ip_backup == REAL_WALLBOX
    assert result.e3dc_ip == MOCK_E3DC_IP
    assert result.e3dc_ip_backup == REAL_E3DC
    assert result.pv_surplus_on_url == MOCK_PV_SURPLUS_ON_URL
    assert result.pv_surplus_on_url_backup == REAL_ON_URL
    assert result.pv_surplus_off_url == MOCK_PV_SURPLUS_OFF_URL
    assert result.pv_surplus_off_url_backup == REAL_OFF_URL
    assert is_mocked(result)


def test_enabling_without_e3dc_mocks_it_but_creates_no_backup():
    result = toggle(real_settings(e3dc_ip=None), True)

    assert result.e3dc_ip == MOCK_E3DC_IP
    assert result.e3dc_ip_backup is None


def test_enabling_leaves_absent_fhem_urls_alone():
    result = toggle(real_settings(pv_surplus_on_url=None, pv_surplus_off_url=None), True)

    assert result.pv_surplus_on_url is None
    assert result.pv_surplus_on_url_backup is None
    assert result.pv_surplus_off_url is None
    assert result.pv_surplus_off_url_backup is None


def test_first_save_with_demo_enabled_has_no_previous():
    result = apply_demo_mode(None, real_settings(demo_mode=True))
    assert result.wallbox_ip == MOCK_WALLBOX_IP
    assert result.wallbox_ip_backup == REAL_WALLBOX


# --- on -> off ---


def test_toggle_on_then_off_restores_originals():
    original = real_settings()

    demo = toggle(original, True)
    restored = toggle(demo, False)

    assert restored == original
    assert restored.to_document() == original.to_document()


def test_disabling_restores_from_previous_even_if_client_dropped_backups():
    demo = toggle(real_settings(), True)
    incoming = Settings(
        wallbox_ip=MOCK_WALLBOX_IP,
        e3dc_ip=MOCK_E3DC_IP,
        pv_surplus_on_url=MOCK_PV_SURPLUS_ON_URL,
        pv_surplus_off_url=MOCK_PV_SURPLUS_OFF_URL,
        demo_mode=False,
    )

    restored = apply_demo_mode(demo, incoming)

    assert restored.wallbox_ip == REAL_WALLBOX
    assert restored.e3dc_ip == REAL_E3DC
    assert restored.pv_surplus_on_url == REAL_ON_URL
    assert restored.pv_surplus_off_url == REAL_OFF_URL


def test_disabling_without_backups_falls_back(log_messages):
    # Written by a version that predates backup fields
    legacy = Settings(wallbox_ip=MOCK_WALLBOX_IP, e3dc_ip=MOCK_E3DC_IP, demo_mode=True)

    result = toggle(legacy, False)

    assert result.wallbox_ip == DEFAULT_WALLBOX_IP
    assert result.e3dc_ip is None
    assert result.wallbox_ip_backup is None
    assert result.e3dc_ip_backup is None
    warnings = log_messages("warning")
    assert "demo_mode_no_wallbox_backup" in warnings
    assert "demo_mode_no_e3dc_backup" in warnings


def test_disabling_keeps_mock_fhem_url_without_backup():
    legacy = Settings(
        wallbox_ip=MOCK_WALLBOX_IP,
        wallbox_ip_backup=REAL_WALLBOX,
        pv_surplus_on_url=MOCK_PV_SURPLUS_ON_URL,
        demo_mode=True,
    )

    result = toggle(legacy, False)

    assert result.wallbox_ip == REAL_WALLBOX
    assert result.pv_surplus_on_url == MOCK_PV_SURPLUS_ON_URL
    assert result.pv_surplus_on_url_backup is None


# --- on -> on ---


def test_staying_in_demo_pins_wallbox_and_fhem_mocks():
    demo = toggle(real_settings(), True)

    result = toggle(
        demo,
        True,
        wallbox_ip="192.168.1.99",
        pv_surplus_on_url="http://leak/on",
        wallbox_ip_backup=None,
        pv_surplus_on_url_backup=None,
    )

    assert result.wallbox_ip == MOCK_WALLBOX_IP
    assert result.wallbox_ip_backup == REAL_WALLBOX
    assert result.pv_surplus_on_url == MOCK_PV_SURPLUS_ON_URL
    assert result.pv_surplus_on_url_backup == REAL_ON_URL


def test_staying_in_demo_forces_fhem_mocks_even_if_absent():
    demo = toggle(real_settings(pv_surplus_on_url=None, pv_surplus_off_url=None), True)

    result = toggle(demo, True)

    assert result.pv_surplus_on_url == MOCK_PV_SURPLUS_ON_URL
    assert result.pv_surplus_off_url == MOCK_PV_SURPLUS_OFF_URL


def test_new_real_e3dc_address_in_demo_is_remembered_as_backup():
    demo = toggle(real_settings(), True)

    result = toggle(demo, True, e3dc_ip="10.0.0.7:5033")

    assert result.e3dc_ip == MOCK_E3DC_IP
    assert result.e3dc_ip_backup == "10.0.0.7:5033"
    assert toggle(result, False).e3dc_ip == "10.0.0.7:5033"


def test_mock_e3dc_keeps_previous_backup():
    demo = toggle(real_settings(), True)

    result = toggle(demo, True, e3dc_ip_backup=None)

    assert result.e3dc_ip == MOCK_E3DC_IP
    assert result.e3dc_ip_backup == REAL_E3DC


def test_cleared_e3dc_after_mock_is_re_mocked():
    demo = toggle(real_settings(), True)

    result = toggle(demo, True, e3dc_ip=None, e3dc_ip_backup=None)

    assert result.e3dc_ip == MOCK_E3DC_IP
    assert result.e3dc_ip_backup == REAL_E3DC


def test_cleared_real_e3dc_is_deleted_for_good():
    # Demo on, but the stored address is real (hand-edited / older document)
    previous = real_settings(
        demo_mode=True,
        wallbox_ip=MOCK_WALLBOX_IP,
        wallbox_ip_backup=REAL_WALLBOX,
        e3dc_ip_backup="10.0.0.1:5033",
    )

    result = toggle(previous, True, e3dc_ip=None)

    assert result.e3dc_ip is None
    assert result.e3dc_ip_backup is None
    # Leaving demo mode does not bring it back
    assert toggle(result, False).e3dc_ip is None
