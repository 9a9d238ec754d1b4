"""Configuration commands for schedule4d CLI."""

from cyclopts import App

from schedule4d.config import DEFAULTS, get_config

config_app = App(name="config", help="Manage configuration")

NUMERIC_KEYS = frozenset({"playback.speed"})


def _validate(key: str, value: str) -> None:
    if key not in NUMERIC_KEYS:
        return
    try:
        number = float(value)
    except ValueError as e:
        raise ValueError(f"{key} must be a number, got {value!r}") from e
    if number <= 0:
        raise ValueError(f"{key} must be positive, got {value}")


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a configuration setting.

    Args:
        key: Configuration key, e.g. store.path or playback.speed
        value: Configuration value
        global_: If True, set in global config. If False, set in local config.
    """
    _validate(key, value)
    config = get_config(use_global=global_)
    config.set(key, value)
    scope = "global" if global_ else "local"
    print(f"Set {key} = {value} ({scope})")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Unset a configuration setting, restoring its default."""
    config = get_config(use_global=global_)
    config.unset(key)
    scope = "global" if global_ else "local"
    default = DEFAULTS.get(key)
    suffix = f", default {default}" if default is not None else ""
    print(f"Unset {key} ({scope}{suffix})")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Get the value of a configuration setting."""
    config = get_config(use_global=global_)
    value = config.get(key)
    if value is None:
        print(f"{key} is not set")
    elif key not in config.list():
        print(f"{key} = {value} (default)")
    else:
        print(f"{key} = {value}")


@config_app.command(name="list")
def list_config(global_: bool = False, defaults: bool = False) -> None:
    """List configuration settings.

    Args:
        global_: If True, list global config only. If False, list merged config.
        defaults: Also list built-in defaults for keys that are not set.
    """
    config = get_config(use_global=global_)
    settings = config.list()
    if defaults:
        settings = {**DEFAULTS, **settings}

    if not settings:
        scope = "global" if global_ else "local"
        print(f"No {scope} configuration settings")
        return

    scope = "Global" if global_ else "Configuration"
    print(f"{scope} settings:\n")
    for key, value in settings.items():
        print(f"{key} = {value}")
