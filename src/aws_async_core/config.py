#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import os
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, Literal, Self
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .shared_files import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_CREDENTIALS_FILE,
    DEFAULT_PROFILE,
    load_profile,
)
from .utils import parse_bool

SOURCE_CONSTRUCTOR = "constructor"
SOURCE_ENVIRONMENT = "environment"
SOURCE_CREDENTIALS_FILE = "credentials_file"
SOURCE_CONFIG_FILE = "config_file"
SOURCE_DEFAULT = "default"

SourceType = Literal[
    "constructor",
    "environment",
    "credentials_file",
    "config_file",
    "default",
]

DEFAULT_ENDPOINT = "https://%service%.%region%.amazonaws.com"

type EnvironmentLoader = Callable[[], Mapping[str, str]]
type ProfileLoader = Callable[[str, str], Mapping[str, str]]
"""Loads the values of a profile given the file path and the profile name."""


class ConfigValue:
    """Configuration value with metadata about its source"""

    def __init__(self, value: Any, source: SourceType):
        self.value = value
        self.source = source

    def __repr__(self) -> str:
        return f"ConfigValue(value={self.value!r}, source={self.source!r})"


class Configuration:
    """Immutable client configuration with precedence-based resolution.

    Values are resolved once, when the configuration is created, from (highest
    precedence first) explicit options, environment variables, the selected profile of
    the shared config file, the same profile of the shared credentials file, and the
    built-in defaults. Every resolved value remembers its source.

    Options may be given by their snake_case name (``shared_config_file``) or their
    camelCase alias (``sharedConfigFile``). Each entry of ``CONFIG_FIELDS`` supports:

        "my_field": {
            "default": None,  # required
            "alias": "myField",  # optional camelCase alias
            "env_var": "MY_ENV_VAR",  # optional, or a tuple checked in order
            "config_key": "my_config_key",  # optional config/credentials file key
            "validator": "_validate_bool",  # optional validation/coercion method
        }

    Unknown options and malformed values raise :py:class:`ConfigurationError` at
    creation time.
    """

    CONFIG_FIELDS: ClassVar[dict[str, dict[str, Any]]] = {
        "region": {
            "default": "us-east-1",
            "alias": "region",
            "env_var": ("AWS_REGION", "AWS_DEFAULT_REGION"),
            "config_key": "region",
            "validator": "_validate_string",
        },
        "debug": {
            "default": False,
            "alias": "debug",
            "env_var": "AWS_DEBUG",
            "validator": "_validate_bool",
        },
        "profile": {
            "default": DEFAULT_PROFILE,
            "alias": "profile",
            "env_var": "AWS_PROFILE",
            "validator": "_validate_string",
        },
        "access_key_id": {
            "default": None,
            "alias": "accessKeyId",
            "validator": "_validate_string",
        },
        "access_key_secret": {
            "default": None,
            "alias": "accessKeySecret",
            "validator": "_validate_string",
        },
        "session_token": {
            "default": None,
            "alias": "sessionToken",
            "validator": "_validate_string",
        },
        "shared_credentials_file": {
            "default": DEFAULT_CREDENTIALS_FILE,
            "alias": "sharedCredentialsFile",
            "env_var": "AWS_SHARED_CREDENTIALS_FILE",
            "validator": "_validate_string",
        },
        "shared_config_file": {
            "default": DEFAULT_CONFIG_FILE,
            "alias": "sharedConfigFile",
            "env_var": "AWS_CONFIG_FILE",
            "validator": "_validate_string",
        },
        "endpoint": {
            "default": DEFAULT_ENDPOINT,
            "alias": "endpoint",
            "env_var": "AWS_ENDPOINT_URL",
            "config_key": "endpoint_url",
            "validator": "_validate_endpoint",
        },
        "role_arn": {
            "default": None,
            "alias": "roleArn",
            "env_var": "AWS_ROLE_ARN",
            "config_key": "role_arn",
            "validator": "_validate_string",
        },
        "web_identity_token_file": {
            "default": None,
            "alias": "webIdentityTokenFile",
            "env_var": "AWS_WEB_IDENTITY_TOKEN_FILE",
            "config_key": "web_identity_token_file",
            "validator": "_validate_string",
        },
        "role_session_name": {
            "default": None,
            "alias": "roleSessionName",
            "env_var": "AWS_ROLE_SESSION_NAME",
            "config_key": "role_session_name",
            "validator": "_validate_string",
        },
        "container_credentials_relative_uri": {
            "default": None,
            "alias": "containerCredentialsRelativeUri",
            "env_var": "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI",
            "validator": "_validate_string",
        },
        "endpoint_discovery_enabled": {
            "default": False,
            "alias": "endpointDiscoveryEnabled",
            "env_var": "AWS_ENDPOINT_DISCOVERY_ENABLED",
            "config_key": "endpoint_discovery_enabled",
            "validator": "_validate_bool",
        },
        "pod_identity_credentials_full_uri": {
            "default": None,
            "alias": "podIdentityCredentialsFullUri",
            "env_var": "AWS_CONTAINER_CREDENTIALS_FULL_URI",
            "validator": "_validate_string",
        },
        "pod_identity_authorization_token_file": {
            "default": None,
            "alias": "podIdentityAuthorizationTokenFile",
            "env_var": "AWS_CONTAINER_AUTHORIZATION_TOKEN_FILE",
            "validator": "_validate_string",
        },
        "path_style_endpoint": {
            "default": False,
            "alias": "pathStyleEndpoint",
            "env_var": "AWS_S3_PATH_STYLE_ENDPOINT",
            "validator": "_validate_bool",
        },
        "send_chunked_body": {
            "default": False,
            "alias": "sendChunkedBody",
            "env_var": "AWS_S3_SEND_CHUNKED_BODY",
            "validator": "_validate_bool",
        },
        "max_attempts": {
            "default": 3,
            "alias": "maxAttempts",
            "env_var": "AWS_MAX_ATTEMPTS",
            "config_key": "max_attempts",
            "validator": "_validate_positive_int",
        },
    }

    # These decide which files are read, so they can't come from the files.
    _FILE_SELECTION_FIELDS: ClassVar[tuple[str, ...]] = (
        "profile",
        "shared_config_file",
        "shared_credentials_file",
    )

    _ALIASES: ClassVar[dict[str, str]] = {
        info["alias"]: name for name, info in CONFIG_FIELDS.items() if "alias" in info
    }

    _values: dict[str, ConfigValue]

    def __init__(self, values: dict[str, ConfigValue]) -> None:
        object.__setattr__(self, "_values", values)

    @classmethod
    def create(
        cls,
        options: Mapping[str, Any] | None = None,
        *,
        environment_loader: EnvironmentLoader | None = None,
        config_file_loader: ProfileLoader | None = None,
        credentials_file_loader: ProfileLoader | None = None,
        **kwargs: Any,
    ) -> Self:
        """Resolve configuration from all sources.

        :param options: Explicit options, keyed by snake_case name or camelCase alias.
        :param environment_loader: Custom environment loader, defaults to
            ``os.environ``.
        :param config_file_loader: Custom loader of the shared config file profile.
        :param credentials_file_loader: Custom loader of the shared credentials file
            profile.
        :param kwargs: Explicit options given as keyword arguments.
        :raises ConfigurationError: If an option is unknown or a value is malformed.
        """
        constructor_values = cls._normalize_options({**(options or {}), **kwargs})
        env_values = (environment_loader or _load_environment)()

        resolved: dict[str, ConfigValue] = {}
        for field_name in cls._FILE_SELECTION_FIELDS:
            resolved[field_name] = cls._resolve_field(
                field_name, constructor_values, env_values, {}, {}
            )

        profile = resolved["profile"].value
        config_file_values = (config_file_loader or _load_config_profile)(
            resolved["shared_config_file"].value, profile
        )
        credentials_file_values = (
            credentials_file_loader or _load_credentials_profile
        )(resolved["shared_credentials_file"].value, profile)

        for field_name in cls.CONFIG_FIELDS:
            if field_name in resolved:
                continue
            resolved[field_name] = cls._resolve_field(
                field_name,
                constructor_values,
                env_values,
                config_file_values,
                credentials_file_values,
            )

        return cls(resolved)

    @classmethod
    def _normalize_options(cls, options: Mapping[str, Any]) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        for key, value in options.items():
            name = cls._ALIASES.get(key, key)
            if name not in cls.CONFIG_FIELDS:
                raise ConfigurationError(f"Invalid option {key!r} passed to client.")
            # None means the option wasn't set, so lower precedence sources apply.
            if value is not None:
                normalized[name] = value
        return normalized

    @classmethod
    def _resolve_field(
        cls,
        field_name: str,
        constructor_values: Mapping[str, Any],
        env_values: Mapping[str, str],
        config_file_values: Mapping[str, str],
        credentials_file_values: Mapping[str, str],
    ) -> ConfigValue:
        field_config = cls.CONFIG_FIELDS[field_name]
        env_vars = field_config.get("env_var", ())
        if isinstance(env_vars, str):
            env_vars = (env_vars,)
        config_key = field_config.get("config_key")

        env_var = next((var for var in env_vars if env_values.get(var)), None)
        source: SourceType
        if field_name in constructor_values:
            value = constructor_values[field_name]
            source = SOURCE_CONSTRUCTOR
        elif env_var is not None:
            value = env_values[env_var]
            source = SOURCE_ENVIRONMENT
        elif config_key and config_key in config_file_values:
            value = config_file_values[config_key]
            source = SOURCE_CONFIG_FILE
        elif config_key and config_key in credentials_file_values:
            value = credentials_file_values[config_key]
            source = SOURCE_CREDENTIALS_FILE
        else:
            return ConfigValue(field_config["default"], SOURCE_DEFAULT)

        if validator := field_config.get("validator"):
            value = getattr(cls, validator)(value, field_name)
        return ConfigValue(value, source)

    @staticmethod
    def _validate_string(value: Any, field_name: str) -> str:
        if not isinstance(value, str):
            raise ConfigurationError(
                f"{field_name} must be a string, got {type(value).__name__}"
            )
        return value

    @staticmethod
    def _validate_bool(value: Any, field_name: str) -> bool:
        if not isinstance(value, str | bool):
            raise ConfigurationError(
                f"{field_name} must be a boolean, got {type(value).__name__}"
            )
        try:
            return parse_bool(value)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {field_name}: {e}") from e

    @staticmethod
    def _validate_positive_int(value: Any, field_name: str) -> int:
        try:
            if isinstance(value, bool):
                raise ValueError(value)
            result = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"{field_name} must be an integer, got {value!r}"
            ) from e
        if result < 1:
            raise ConfigurationError(f"{field_name} must be at least 1, got {result}")
        return result

    @staticmethod
    def _validate_endpoint(value: Any, field_name: str) -> str:
        if not isinstance(value, str):
            raise ConfigurationError(
                f"{field_name} must be a string, got {type(value).__name__}"
            )
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"{field_name} must be an absolute http(s) URL, got {value!r}"
            )
        return value

    def get(self, name: str) -> Any:
        """Get a resolved value by snake_case name or camelCase alias."""
        return self.get_config_value_object(name).value

    def get_config_value_object(self, name: str) -> ConfigValue:
        """Get the raw ConfigValue object for a field"""
        field_name = self._ALIASES.get(name, name)
        try:
            return self._values[field_name]
        except KeyError:
            raise ConfigurationError(f"Unknown configuration option {name!r}") from None

    def is_default(self, name: str) -> bool:
        """Whether the option fell back to its built-in default."""
        return self.get_config_value_object(name).source == SOURCE_DEFAULT

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name not in self.CONFIG_FIELDS:
            raise AttributeError(name)
        return self._values[name].value

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Configuration is immutable")

    def __repr__(self) -> str:
        # Secrets are never part of the representation.
        shown = {
            name: config_value.value
            for name, config_value in self._values.items()
            if name not in ("access_key_secret", "session_token")
        }
        return f"Configuration({shown!r})"


def _load_environment() -> Mapping[str, str]:
    return os.environ


def _load_config_profile(path: str, profile: str) -> Mapping[str, str]:
    return load_profile(path, profile, is_config_file=True)


def _load_credentials_profile(path: str, profile: str) -> Mapping[str, str]:
    return load_profile(path, profile)
