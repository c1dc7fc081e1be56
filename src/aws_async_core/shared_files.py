#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""Loading of the shared ``credentials`` and ``config`` INI files."""

import configparser
import logging
import os

from .exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

DEFAULT_PROFILE = "default"
DEFAULT_CREDENTIALS_FILE = "~/.aws/credentials"
DEFAULT_CONFIG_FILE = "~/.aws/config"

type Profiles = dict[str, dict[str, str]]


def load_shared_file(path: str, *, is_config_file: bool = False) -> Profiles:
    """Parse a shared file into a mapping of profile name to profile values.

    In the config file, profiles other than ``default`` live in ``[profile name]``
    sections. Both spellings are accepted, with ``[profile name]`` taking precedence.
    A missing file yields no profiles.

    :param path: The path of the file. ``~`` is expanded.
    :param is_config_file: Whether the file uses the config file section naming.
    :raises ConfigurationError: If the file exists but can't be read or parsed.
    """
    expanded = os.path.expanduser(path)
    if not os.path.isfile(expanded):
        _LOGGER.debug("Shared file %s does not exist", expanded)
        return {}

    parser = configparser.ConfigParser(interpolation=None, default_section="\0")
    try:
        with open(expanded, encoding="utf-8") as f:
            parser.read_file(f)
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        raise ConfigurationError(f"Unable to load shared file {expanded}: {e}") from e

    profiles: Profiles = {}
    prefixed: Profiles = {}
    for section in parser.sections():
        values = {key: value.strip() for key, value in parser[section].items()}
        if is_config_file and section.startswith("profile "):
            prefixed[section[len("profile ") :].strip()] = values
        else:
            profiles[section.strip()] = values

    profiles.update(prefixed)
    return profiles


def load_profile(
    path: str, profile: str, *, is_config_file: bool = False
) -> dict[str, str]:
    """Load the values of a single profile, or an empty dict if it isn't defined."""
    return load_shared_file(path, is_config_file=is_config_file).get(profile, {})
