from collections.abc import Callable
import logging
from typing import NamedTuple

from preferences import Preferences


logger = logging.getLogger(__name__)


ONLINE_MODE_KEY = "online_mode"


class Settings(NamedTuple):
    online_mode: bool


def online_mode_reader(
    preferences: Preferences,
    key: str = ONLINE_MODE_KEY,
) -> Callable[[], bool]:
    def read() -> bool:
        return preferences.get_bool(key, True)

    return read


def read_settings(preferences: Preferences, key: str = ONLINE_MODE_KEY) -> Settings:
    return Settings(online_mode=preferences.get_bool(key, True))


def save_settings(
    preferences: Preferences,
    *,
    online_mode: bool,
    key: str = ONLINE_MODE_KEY,
) -> Settings:
    preferences.set(key, online_mode)
    logger.info("Saved settings: online_mode=%s", online_mode)
    return Settings(online_mode=online_mode)
