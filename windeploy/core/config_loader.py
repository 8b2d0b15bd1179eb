"""Configuration loading for windeploy (windeploy.yml)"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from windeploy.constants import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    DEFAULT_ADD_TO_PATH,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_INSTALL_DIRECTORY,
    DEFAULT_INSTALLER_FILENAME,
    DEFAULT_LOG_DIR,
    DEFAULT_PING_TIMEOUT,
    DEFAULT_REGISTER_AS_DEFAULT,
    DEFAULT_SOURCE_PATH,
    DEFAULT_SSH_PORT,
    DEFAULT_STAGING_DIRECTORY,
    DEFAULT_TRANSFER_METHOD,
    DEFAULT_VERIFY_ARTIFACT,
    MISSING_ARTIFACT_POLICIES,
    ON_MISSING_WARN,
    PING_COUNT,
    TRANSFER_METHODS,
)
from windeploy.exceptions import ConfigurationError
from windeploy.models.config import (
    DeploymentConfig,
    InstallerOptions,
    ProbeConfig,
    VerifyConfig,
)
from windeploy.models.ssh import SSHConfig


def find_config_file(explicit: Optional[Path] = None) -> Optional[Path]:
    """
    Locate the configuration file.

    Order: explicit path, $WINDEPLOY_CONFIG, ./windeploy.yml.
    An explicit or environment path that does not exist is an error;
    a missing ./windeploy.yml just means defaults.
    """
    if explicit is not None:
        if not explicit.exists():
            raise ConfigurationError(f"Config file not found: {explicit}")
        return explicit

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path).expanduser()
        if not path.exists():
            raise ConfigurationError(
                f"Config file not found: {path}", f"Set by ${CONFIG_ENV_VAR}"
            )
        return path

    local = Path.cwd() / CONFIG_FILENAME
    if local.exists():
        return local
    return None


def load_config(path: Optional[Path] = None) -> DeploymentConfig:
    """
    Load configuration from YAML, applying defaults.

    Args:
        path: Explicit config file (optional)

    Returns:
        Validated DeploymentConfig

    Raises:
        ConfigurationError: If the file is unreadable or values are invalid
    """
    config_path = find_config_file(path)
    if config_path is None:
        return build_config({})

    try:
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}", str(e))
    except OSError as e:
        raise ConfigurationError(f"Could not read {config_path}", str(e))

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid config in {config_path}: expected a mapping")

    return build_config(raw, source=str(config_path))


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Invalid '{name}' section: expected a mapping")
    return value


def _positive_int(value: Any, name: str, allow_none: bool = False) -> Optional[int]:
    if value is None and allow_none:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {name}: {value!r} (expected a number)")
    if number <= 0:
        raise ConfigurationError(f"Invalid {name}: {number} (must be > 0)")
    return number


def _flag(value: Any, name: str) -> bool:
    # YAML parses yes/no and true/false; quoted strings stay strings
    if not isinstance(value, bool):
        raise ConfigurationError(f"Invalid {name}: {value!r} (expected true or false)")
    return value


def _text(value: Any, name: str) -> str:
    if value is None or not str(value).strip():
        raise ConfigurationError(f"Missing required value: '{name}'")
    return str(value).strip()


def build_config(raw: Dict[str, Any], source: Optional[str] = None) -> DeploymentConfig:
    """Build a DeploymentConfig from a raw mapping."""
    try:
        installer = _section(raw, "installer_options")
        remoting = _section(raw, "remoting")
        probe = _section(raw, "probe")
        verify = _section(raw, "verify")

        transfer = str(raw.get("transfer", DEFAULT_TRANSFER_METHOD)).lower()
        if transfer not in TRANSFER_METHODS:
            raise ConfigurationError(
                f"Invalid transfer method: {transfer}",
                f"Expected one of: {', '.join(TRANSFER_METHODS)}",
            )

        on_missing = str(verify.get("on_missing", ON_MISSING_WARN)).lower()
        if on_missing not in MISSING_ARTIFACT_POLICIES:
            raise ConfigurationError(
                f"Invalid verify.on_missing: {on_missing}",
                f"Expected one of: {', '.join(MISSING_ARTIFACT_POLICIES)}",
            )

        return DeploymentConfig(
            source_path=_text(raw.get("source", DEFAULT_SOURCE_PATH), "source"),
            installer_filename=_text(
                raw.get("installer", DEFAULT_INSTALLER_FILENAME), "installer"
            ),
            staging_directory=_text(
                raw.get("staging_dir", DEFAULT_STAGING_DIRECTORY), "staging_dir"
            ),
            install_directory=_text(
                raw.get("install_dir", DEFAULT_INSTALL_DIRECTORY), "install_dir"
            ),
            installer=InstallerOptions(
                add_to_path=_flag(
                    installer.get("add_to_path", DEFAULT_ADD_TO_PATH), "installer_options.add_to_path"
                ),
                register_as_default=_flag(
                    installer.get("register_default", DEFAULT_REGISTER_AS_DEFAULT),
                    "installer_options.register_default",
                ),
            ),
            remoting=SSHConfig(
                user=remoting.get("user"),
                key_path=remoting.get("key_path"),
                port=_positive_int(remoting.get("port", DEFAULT_SSH_PORT), "remoting.port"),
                connect_timeout=_positive_int(
                    remoting.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT),
                    "remoting.connect_timeout",
                ),
            ),
            transfer_method=transfer,
            probe=ProbeConfig(
                resolve_names=_flag(probe.get("resolve_names", True), "probe.resolve_names"),
                ping_count=PING_COUNT,
                ping_timeout=_positive_int(
                    probe.get("ping_timeout", DEFAULT_PING_TIMEOUT), "probe.ping_timeout"
                ),
            ),
            execution_timeout=_positive_int(
                raw.get("execution_timeout"), "execution_timeout", allow_none=True
            ),
            verify=VerifyConfig(
                artifact=_text(verify.get("artifact", DEFAULT_VERIFY_ARTIFACT), "verify.artifact"),
                on_missing=on_missing,
            ),
            require_privileged=_flag(
                raw.get("require_privileged", False), "require_privileged"
            ),
            log_dir=str(raw.get("log_dir") or DEFAULT_LOG_DIR),
        )
    except ConfigurationError as e:
        if source and not e.context:
            raise ConfigurationError(e.message, f"File: {source}")
        raise
