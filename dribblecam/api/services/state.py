"""In-process state for settings and the drill engine.

FastAPI routes use this module to access (and hot-reload) the singleton
`DrillEngine` instance.
"""

from __future__ import annotations

from threading import RLock

from dribblecam.api.services.engine import DrillEngine
from dribblecam.core.config.settings import DribbleSettings, load_settings, settings_to_dict

_settings: DribbleSettings | None = None
_engine: DrillEngine | None = None
_lock = RLock()


def get_settings() -> DribbleSettings:
    """Return cached settings, loading them on first use."""

    global _settings
    with _lock:
        if _settings is None:
            _settings = load_settings()
    return _settings


def reload_settings(data: dict | None = None) -> DribbleSettings:
    """Reload settings and restart the engine if it is running.

    A drill in progress is kept; new counter and timing settings apply from its
    next start.

    Args:
        data: Optional patch dict merged into the loaded settings.
    """

    global _settings, _engine
    with _lock:
        base = load_settings()
        if data:
            _settings = DribbleSettings(**{**settings_to_dict(base), **data})
        else:
            _settings = base
        if _engine:
            session = _engine.session
            _engine.stop()
            # The drill (phase, count, epoch) outlives the engine restart.
            _engine = DrillEngine(_settings, session=session)
            _engine.start()
    return _settings


def get_engine() -> DrillEngine:
    """Return the singleton engine instance, creating and starting it if needed."""

    global _engine
    with _lock:
        if _engine is None:
            _engine = DrillEngine(get_settings())
            _engine.start()
    return _engine


def stop_engine() -> None:
    """Stop and discard the singleton engine instance (if present)."""

    global _engine
    with _lock:
        if _engine is not None:
            _engine.stop()
            _engine = None
