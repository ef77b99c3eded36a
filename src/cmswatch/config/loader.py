"""Loading watch session options from the environment."""

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .schema import WatchOptions
from ..utils.logging import get_logger


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""
    pass


_TRUE_VALUES = ["true", "1", "yes"]


def _env_flag(env: Mapping[str, str], name: str) -> Optional[bool]:
    value = env.get(name)
    if value is None:
        return None
    return value.lower() in _TRUE_VALUES


def load_watch_options(data: Dict[str, Any]) -> WatchOptions:
    """Validate watch session options from a dictionary.

    Raises:
        ConfigurationError: If the options fail validation
    """
    try:
        return WatchOptions(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid watch options: {e}")


def load_watch_options_from_env(env: Optional[Mapping[str, str]] = None) -> WatchOptions:
    """Build watch session options from ``CMSWATCH_*`` environment variables.

    Recognized variables: CMSWATCH_ACCOUNT_ID, CMSWATCH_SRC, CMSWATCH_DEST,
    CMSWATCH_MODE, CMSWATCH_CWD, CMSWATCH_REMOVE, CMSWATCH_DISABLE_INITIAL,
    CMSWATCH_NOTIFY.
    """
    env = os.environ if env is None else env
    logger = get_logger("load_watch_options_from_env")

    data: Dict[str, Any] = {
        "account_id": env.get("CMSWATCH_ACCOUNT_ID", ""),
        "src": env.get("CMSWATCH_SRC", ""),
        "dest": env.get("CMSWATCH_DEST", ""),
    }

    if env.get("CMSWATCH_MODE"):
        data["mode"] = env["CMSWATCH_MODE"]
    if env.get("CMSWATCH_CWD"):
        data["cwd"] = env["CMSWATCH_CWD"]
    if env.get("CMSWATCH_NOTIFY"):
        data["notify"] = env["CMSWATCH_NOTIFY"]

    for key, name in (("remove", "CMSWATCH_REMOVE"), ("disable_initial", "CMSWATCH_DISABLE_INITIAL")):
        flag = _env_flag(env, name)
        if flag is not None:
            data[key] = flag

    options = load_watch_options(data)
    logger.info(
        "Loaded watch options from environment",
        account_id=options.account_id,
        src=options.src,
        dest=options.dest,
        mode=options.mode.value
    )
    return options
