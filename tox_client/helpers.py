import logging
import os

from tox_client.constants import Constants

logger = logging.getLogger("__main__")


def get_user_config_dir() -> str | None:
    """
    Returns the directory the client keeps its files in, creating it if needed.
    Uses $XDG_CONFIG_HOME/tox, falling back to ~/.config/tox.
    :return: The directory, or None if it couldn't be determined or created.
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if not base:
        home = os.path.expanduser("~")
        if home == "~":  # no home directory to expand to
            logger.warning("Could not determine home directory.")
            return None
        base = os.path.join(home, ".config")

    config_dir = os.path.join(base, Constants.CONFIG_DIR_NAME)
    try:
        os.makedirs(config_dir, exist_ok=True)
    except OSError as e:
        logger.warning(f"Could not create config directory {config_dir}: {e}")
        return None

    return config_dir


def make_sure_filepath_exists(filename: str) -> None:
    if os.path.isabs(filename):
        logger.debug(f"Path {filename} is absolute.")
        path = filename
    else:
        path = os.path.join(os.getcwd(), filename)
        logger.debug(f"Path {filename} is not absolute, absolute version is {path}")
    dirname = os.path.dirname(path)
    if dirname and not os.path.exists(dirname):
        logger.debug(f"Making directory {dirname}.")
        os.makedirs(dirname)

