"""Shared command-line options and config resolution for deploy/check commands."""

import functools
from dataclasses import replace
from pathlib import Path
from typing import Optional

import rich_click as click

from windeploy.constants import ON_MISSING_FAIL, TRANSFER_METHODS
from windeploy.core.config_loader import load_config
from windeploy.models.config import DeploymentConfig


def config_option(func):
    """--config option."""
    return click.option(
        "-c",
        "--config",
        "config_path",
        type=click.Path(path_type=Path, dir_okay=False),
        help="Path to windeploy.yml (default: $WINDEPLOY_CONFIG or ./windeploy.yml)",
    )(func)


def deployment_options(func):
    """Options shared by every command that talks to a target."""
    options = [
        config_option,
        click.option("-u", "--user", help="SSH user on the target"),
        click.option(
            "-i",
            "--key",
            "key_path",
            type=click.Path(dir_okay=False),
            help="SSH private key",
        ),
        click.option("-p", "--port", type=click.IntRange(min=1, max=65535), help="SSH port"),
        click.option(
            "--no-resolve",
            is_flag=True,
            help="Skip the name resolution check (unreachable hosts exit 10)",
        ),
        click.option(
            "--require-admin",
            is_flag=True,
            help="Refuse to run unless started as Administrator/root",
        ),
        click.option("--verbose", "-v", is_flag=True, help="Show debug output"),
        click.option("--json", "json_output", is_flag=True, help="Output result as JSON"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def install_options(func):
    """Options that only matter when something is installed."""
    options = [
        click.option("-s", "--source", help="Directory or share holding the installer"),
        click.option("--installer", help="Installer file name"),
        click.option("--staging-dir", help="Staging directory on the target"),
        click.option("--install-dir", help="Install directory on the target"),
        click.option(
            "--add-to-path/--no-add-to-path",
            default=None,
            help="Add the distribution to PATH (/AddToPath)",
        ),
        click.option(
            "--register-default/--no-register-default",
            default=None,
            help="Register the distribution as the system Python (/RegisterPython)",
        ),
        click.option(
            "-t",
            "--transfer",
            type=click.Choice(TRANSFER_METHODS),
            help="How the installer is copied: share (Windows controllers only) or sftp",
        ),
        click.option(
            "--timeout",
            type=click.IntRange(min=1),
            help="Seconds to wait for the installer (default: no limit)",
        ),
        click.option(
            "--strict-verify",
            is_flag=True,
            help="Fail (exit 30) when the installed python.exe is missing",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def resolve_config(
    config_path: Optional[Path] = None,
    user: Optional[str] = None,
    key_path: Optional[str] = None,
    port: Optional[int] = None,
    no_resolve: bool = False,
    require_admin: bool = False,
    source: Optional[str] = None,
    installer: Optional[str] = None,
    staging_dir: Optional[str] = None,
    install_dir: Optional[str] = None,
    add_to_path: Optional[bool] = None,
    register_default: Optional[bool] = None,
    transfer: Optional[str] = None,
    timeout: Optional[int] = None,
    strict_verify: bool = False,
) -> DeploymentConfig:
    """
    Load the config file and apply command-line overrides on top.

    Raises:
        ConfigurationError: If the config file is invalid
    """
    config = load_config(config_path)

    remoting = config.remoting
    if user or key_path or port:
        remoting = replace(
            remoting,
            user=user or remoting.user,
            key_path=key_path or remoting.key_path,
            port=port or remoting.port,
        )

    installer_options = config.installer
    if add_to_path is not None:
        installer_options = replace(installer_options, add_to_path=add_to_path)
    if register_default is not None:
        installer_options = replace(installer_options, register_as_default=register_default)

    probe = config.probe
    if no_resolve:
        probe = replace(probe, resolve_names=False)

    verify = config.verify
    if strict_verify:
        verify = replace(verify, on_missing=ON_MISSING_FAIL)

    return config.with_overrides(
        source_path=source,
        installer_filename=installer,
        staging_directory=staging_dir,
        install_directory=install_dir,
        installer=installer_options,
        remoting=remoting,
        transfer_method=transfer,
        probe=probe,
        execution_timeout=timeout,
        verify=verify,
        require_privileged=True if require_admin else None,
    )


def collect_overrides(func):
    """Gather config-related options into one `overrides` mapping for resolve_config."""
    config_keys = (
        "config_path",
        "user",
        "key_path",
        "port",
        "no_resolve",
        "require_admin",
        "source",
        "installer",
        "staging_dir",
        "install_dir",
        "add_to_path",
        "register_default",
        "transfer",
        "timeout",
        "strict_verify",
    )

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        overrides = {key: kwargs.pop(key) for key in config_keys if key in kwargs}
        kwargs["overrides"] = overrides
        return func(*args, **kwargs)

    return wrapper
