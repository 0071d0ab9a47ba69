import logging
import os
from argparse import Namespace
from dataclasses import dataclass
from typing import Callable

from tox_client.constants import Constants
from tox_client.helpers import get_user_config_dir

logger = logging.getLogger("__main__")


@dataclass(frozen=True)
class ClientConfig:
    """
    Settings resolved once at startup, then passed to whatever needs them.

    Fields
    - data_file: where the session is saved to and loaded from.
    - load_from_file: False when persistence was disabled with -n.
    - server_list: bootstrap server list path.
    - missing_file_argument: -f was passed without a path.
    - config_unresolved: the config directory lookup failed, so defaults were used.
    """
    data_file: str
    server_list: str
    load_from_file: bool = True
    missing_file_argument: bool = False
    config_unresolved: bool = False
    verbose: bool = False
    port: int | None = None


def resolve_config(args: Namespace,
                   config_dir_lookup: Callable[[], str | None] = get_user_config_dir) -> ClientConfig:
    """
    Builds a ClientConfig from parsed arguments (see ui_helpers.handle_terminal).

    An explicit -f path wins. Otherwise the session lives in the config directory,
    or in the working directory if the directory can't be determined.
    """
    data_file: str | None = args.data_file or None
    missing_file_argument: bool = args.missing_file_argument
    config_unresolved = False

    config_dir = None
    if data_file is None or not args.servers:
        config_dir = config_dir_lookup()
        config_unresolved = config_dir is None and data_file is None

    if data_file is None:
        if config_dir is None:
            logger.info("Config directory lookup failed, using defaults.")
            data_file = Constants.DATA_FILE_NAME
        else:
            data_file = os.path.join(config_dir, Constants.DATA_FILE_NAME)

    if args.servers:
        server_list = args.servers
    elif config_dir is None:
        server_list = Constants.SERVER_LIST_NAME
    else:
        server_list = os.path.join(config_dir, Constants.SERVER_LIST_NAME)

    config = ClientConfig(
        data_file=data_file,
        server_list=server_list,
        load_from_file=args.load_from_file,
        missing_file_argument=missing_file_argument,
        config_unresolved=config_unresolved,
        verbose=args.verbose,
        port=args.port
    )
    logger.debug(f"Resolved configuration: {config}")
    return config
