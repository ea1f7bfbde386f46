"""Demo mode — swap real endpoints for local mocks and back.

The transition is derived on every settings save from the previous and
the new ``demo_mode`` flag:

    off -> on   back up real values, point everything at the mock server
    on  -> off  restore backups, drop them
    on  -> on   keep mocks pinned, carry backups forward
    off -> off  pass through

Toggling on and straight back off restores the original values exactly.
An explicit E3DC deletion while in demo mode is honoured and cannot be
undone by leaving demo mode.
"""

from __future__ import annotations

from shared.log import get_logger

from models import DEFAULT_WALLBOX_IP, Settings

logger = get_logger("storage")

MOCK_WALLBOX_IP = "127.0.0.1"
MOCK_E3DC_IP = "127.0.0.1:5502"
MOCK_PV_SURPLUS_ON_URL = "http://127.0.0.1:8083/fhem?cmd.autoWallboxPV=on"
MOCK_PV_SURPLUS_OFF_URL = "http://127.0.0.1:8083/fhem?cmd.autoWallboxPV=off"

# (live field, backup field, mock value)
_FHEM_FIELDS = (
    ("pv_surplus_on_url", "pv_surplus_on_url_backup", MOCK_PV_SURPLUS_ON_URL),
    ("pv_surplus_off_url", "pv_surplus_off_url_backup", MOCK_PV_SURPLUS_OFF_URL),
)


def apply_demo_mode(previous: Settings | None, incoming: Settings) -> Settings:
    """Return a copy of ``incoming`` with the demo-mode transition applied."""
    settings = incoming.model_copy(deep=True)
    was_demo = bool(previous and previous.demo_mode)
    is_demo = settings.demo_mode

    if is_demo and not was_demo:
        _enter(settings)
    elif was_demo and not is_demo:
        _leave(previous, settings)
    elif is_demo and was_demo:
        _stay(previous, settings)
    return settings


def is_mocked(settings: Settings) -> bool:
    """True if any live endpoint currently points at the mock server."""
    return (
        settings.wallbox_ip == MOCK_WALLBOX_IP
        or settings.e3dc_ip == MOCK_E3DC_IP
        or settings.pv_surplus_on_url == MOCK_PV_SURPLUS_ON_URL
        or settings.pv_surplus_off_url == MOCK_PV_SURPLUS_OFF_URL
    )


def _enter(settings: Settings) -> None:
    if settings.wallbox_ip and settings.wallbox_ip != MOCK_WALLBOX_IP:
        settings.wallbox_ip_backup = settings.wallbox_ip
    settings.wallbox_ip = MOCK_WALLBOX_IP

    # Always mocked, but only backed up if there was something to back up
    if settings.e3dc_ip and settings.e3dc_ip != MOCK_E3DC_IP:
        settings.e3dc_ip_backup = settings.e3dc_ip
    settings.e3dc_ip = MOCK_E3DC_IP

    for field, backup, mock in _FHEM_FIELDS:
        value = getattr(settings, field)
        if not value:
            continue
        if value != mock:
            setattr(settings, backup, value)
        setattr(settings, field, mock)

    logger.debug(
        "demo_mode_enabled",
        wallbox_backup=settings.wallbox_ip_backup,
        e3dc_backup=settings.e3dc_ip_backup,
    )


def _leave(previous: Settings, settings: Settings) -> None:
    wallbox_backup = previous.wallbox_ip_backup or settings.wallbox_ip_backup
    if wallbox_backup:
        settings.wallbox_ip = wallbox_backup
    elif settings.wallbox_ip == MOCK_WALLBOX_IP:
        # Documents from before backups existed
        settings.wallbox_ip = DEFAULT_WALLBOX_IP
        logger.warning("demo_mode_no_wallbox_backup", fallback_ip=DEFAULT_WALLBOX_IP)
    settings.wallbox_ip_backup = None

    e3dc_backup = previous.e3dc_ip_backup or settings.e3dc_ip_backup
    if e3dc_backup:
        settings.e3dc_ip = e3dc_backup
    elif settings.e3dc_ip == MOCK_E3DC_IP:
        settings.e3dc_ip = None
        logger.warning("demo_mode_no_e3dc_backup", action="e3dc_ip_removed")
    settings.e3dc_ip_backup = None

    for field, backup, _mock in _FHEM_FIELDS:
        value = getattr(previous, backup) or getattr(settings, backup)
        if value:
            setattr(settings, field, value)
        setattr(settings, backup, None)

    logger.debug(
        "demo_mode_disabled",
        wallbox_ip=settings.wallbox_ip,
        e3dc_ip=settings.e3dc_ip,
    )


def _stay(previous: Settings, settings: Settings) -> None:
    settings.wallbox_ip = MOCK_WALLBOX_IP
    if not settings.wallbox_ip_backup:
        settings.wallbox_ip_backup = previous.wallbox_ip_backup

    if settings.e3dc_ip and settings.e3dc_ip != MOCK_E3DC_IP:
        # A real address typed in while in demo mode is remembered, not used
        settings.e3dc_ip_backup = settings.e3dc_ip
        settings.e3dc_ip = MOCK_E3DC_IP
        logger.debug("demo_mode_e3dc_backup_updated", e3dc_backup=settings.e3dc_ip_backup)
    elif settings.e3dc_ip == MOCK_E3DC_IP:
        if not settings.e3dc_ip_backup:
            settings.e3dc_ip_backup = previous.e3dc_ip_backup
    elif previous.e3dc_ip == MOCK_E3DC_IP:
        # Cleared by a form that never showed the mock value
        settings.e3dc_ip = MOCK_E3DC_IP
        if not settings.e3dc_ip_backup:
            settings.e3dc_ip_backup = previous.e3dc_ip_backup
    elif previous.e3dc_ip:
        settings.e3dc_ip = None
        settings.e3dc_ip_backup = None
        logger.debug("demo_mode_e3dc_deleted")

    for field, backup, mock in _FHEM_FIELDS:
        setattr(settings, field, mock)
        if not getattr(settings, backup):
            setattr(settings, backup, getattr(previous, backup))
