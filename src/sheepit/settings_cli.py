"""CLI for the client settings file.

Usage:
    sheepit settings path                     Print the settings file location
    sheepit settings show [--show-password]   Print every stored value
    sheepit settings get <key>                Print one stored value
    sheepit settings set <key> <value>        Store a value
    sheepit settings reset <key>              Remove a stored value
    sheepit settings merge [flags] [--save]   Print the effective configuration
    sheepit settings prefs [show]             Print the CLI's own preferences
    sheepit settings prefs set <name> <value> [--global]
    sheepit settings prefs reset <name> [--global]

Every command accepts ``--config PATH`` to use another settings file.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import pathlib
import sys

import sheepit.config
import sheepit.runtime
import sheepit.settings


@sheepit.config.configurable("cli")
@dataclasses.dataclass
class CliConfig:
    # Empty means ~/.sheepit.conf
    settings_path: str = ""
    log_level: str = "WARNING"


def _setup_logging(cli_config: CliConfig, *, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(
        logging, cli_config.log_level.upper(), logging.WARNING
    )
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _settings_path(
    override: pathlib.Path | None, cli_config: CliConfig
) -> pathlib.Path:
    if override is not None:
        return override
    if cli_config.settings_path:
        return pathlib.Path(cli_config.settings_path).expanduser()
    return sheepit.settings.default_file_path()


def _check_key(key: str) -> bool:
    if key in sheepit.settings.FIELDS:
        return True
    known = ", ".join(sheepit.settings.KEYS.values())
    print(f"Unknown key: {key!r} (expected one of: {known})", file=sys.stderr)
    return False


def cmd_path(store: sheepit.settings.SettingsStore) -> int:
    """Print the settings file location."""
    print(store.path)
    return 0


def cmd_show(store: sheepit.settings.SettingsStore, *, show_password: bool) -> int:
    """Print every stored value in file order."""
    record = store.load()
    if record.is_empty():
        print(f"No settings stored in {store.path}")
        return 0
    for key, value in record.to_properties().items():
        if key == "password" and not show_password:
            value = "********"
        print(f"{key} = {value}")
    return 0


def cmd_get(store: sheepit.settings.SettingsStore, key: str) -> int:
    """Print the stored value for *key*."""
    if not _check_key(key):
        return 1
    value = store.load().get_text(key)
    if value is None:
        print(f"{key} is not set", file=sys.stderr)
        return 1
    print(value)
    return 0


def cmd_set(store: sheepit.settings.SettingsStore, key: str, value: str) -> int:
    """Store *value* under *key*, keeping the other fields."""
    if not _check_key(key):
        return 1
    record = store.load()
    try:
        record.set_text(key, value)
    except ValueError as exc:
        print(f"Invalid value for {key}: {exc}", file=sys.stderr)
        return 1
    if not store.save():
        print(f"Could not write {store.path}", file=sys.stderr)
        return 1
    shown = "********" if key == "password" else value
    print(f"Set {key} = {shown}")
    return 0


def cmd_reset(store: sheepit.settings.SettingsStore, key: str) -> int:
    """Remove *key* from the settings file."""
    if not _check_key(key):
        return 1
    record = store.load()
    record.set_text(key, None)
    if not store.save():
        print(f"Could not write {store.path}", file=sys.stderr)
        return 1
    print(f"Reset {key}")
    return 0


def _configuration_from_args(args: argparse.Namespace) -> sheepit.runtime.Configuration:
    config = sheepit.runtime.Configuration(
        login=args.login or "",
        password=args.password or "",
        proxy=args.proxy,
        compute_method=sheepit.runtime.ComputeType.parse(args.compute_method),
        cpu_cores=args.cores,
        ui_type=args.ui,
        tile_size=args.tile_size,
    )
    if args.cache_dir is not None:
        config.set_cache_dir(args.cache_dir)
    return config


def cmd_merge(store: sheepit.settings.SettingsStore, args: argparse.Namespace) -> int:
    """Merge the settings file into flags and print the result."""
    config = _configuration_from_args(args)
    store.merge(config)
    for f in dataclasses.fields(config):
        value = getattr(config, f.name)
        if f.name == "password" and value and not args.show_password:
            value = "********"
        elif isinstance(value, sheepit.runtime.ComputeType):
            value = value.name
        print(f"{f.name} = {value}")

    if args.save:
        snapshot = sheepit.settings.SettingsStore.from_configuration(config, store.path)
        if config.gpu_device is None:
            # Unresolved here; keep the stored device for the next client run.
            snapshot.record.gpu = store.record.gpu
        if not snapshot.save():
            print(f"Could not write {store.path}", file=sys.stderr)
            return 1
    return 0


def cmd_prefs(
    action: str, name: str | None, value: str | None, *, global_flag: bool
) -> int:
    """Show or edit the CLI preferences kept in config.toml."""
    scope = "global" if global_flag else "local"
    if action == "show":
        prefs = sheepit.config.load("cli")
        for f in dataclasses.fields(prefs):
            print(f"{f.name} = {getattr(prefs, f.name)!r}")
        return 0

    if name is None:
        print(f"prefs {action}: missing preference name", file=sys.stderr)
        return 1
    if action == "set" and value is None:
        print("prefs set: missing value", file=sys.stderr)
        return 1
    try:
        if action == "set":
            stored = sheepit.config.set_value("cli", name, value, scope=scope)
            print(f"Set {name} = {stored!r} ({scope})")
        elif sheepit.config.reset_value("cli", name, scope=scope):
            print(f"Reset {name} ({scope})")
        else:
            print(f"{name} is not set in {sheepit.config.scope_path(scope)}")
    except (KeyError, ValueError) as exc:
        print(str(exc).strip("'\""), file=sys.stderr)
        return 1
    return 0


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", type=pathlib.Path, default=None,
        help="Settings file (default: ~/.sheepit.conf)",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(
        prog="sheepit settings",
        description="Inspect and edit the stored client settings.",
    )
    sub = parser.add_subparsers(dest="subcmd")

    sub.add_parser("path", parents=[common], help="Print the settings file location")

    p_show = sub.add_parser("show", parents=[common], help="Print stored values")
    p_show.add_argument("--show-password", action="store_true")

    p_get = sub.add_parser("get", parents=[common], help="Print one stored value")
    p_get.add_argument("key", help="Settings key, e.g. tile-size")

    p_set = sub.add_parser("set", parents=[common], help="Store a value")
    p_set.add_argument("key", help="Settings key, e.g. tile-size")
    p_set.add_argument("value", help="New value")

    p_reset = sub.add_parser("reset", parents=[common], help="Remove a stored value")
    p_reset.add_argument("key", help="Settings key, e.g. tile-size")

    p_merge = sub.add_parser(
        "merge", parents=[common], help="Print the effective configuration"
    )
    p_merge.add_argument("--login")
    p_merge.add_argument("--password")
    p_merge.add_argument("--proxy")
    p_merge.add_argument(
        "--compute-method",
        choices=[m.name for m in sheepit.runtime.ComputeType],
    )
    p_merge.add_argument("--cores", type=int, default=sheepit.runtime.UNSET)
    p_merge.add_argument("--cache-dir", type=pathlib.Path)
    p_merge.add_argument("--ui")
    p_merge.add_argument("--tile-size", type=int, default=sheepit.runtime.UNSET)
    p_merge.add_argument("--show-password", action="store_true")
    p_merge.add_argument(
        "--save", action="store_true",
        help="Write the effective configuration back to the settings file",
    )
    p_prefs = sub.add_parser(
        "prefs", parents=[common], help="Show or edit the CLI's own preferences"
    )
    p_prefs.add_argument("action", nargs="?", default="show", choices=["show", "set", "reset"])
    p_prefs.add_argument("name", nargs="?", help="Preference name, e.g. log_level")
    p_prefs.add_argument("value", nargs="?", help="New value")
    p_prefs.add_argument("--global", dest="global_flag", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``sheepit settings``."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.subcmd is None:
        parser.print_help()
        return 1

    cli_config = sheepit.config.load("cli")
    _setup_logging(cli_config, verbose=args.verbose)
    store = sheepit.settings.SettingsStore(_settings_path(args.config, cli_config))

    if args.subcmd == "path":
        return cmd_path(store)
    elif args.subcmd == "show":
        return cmd_show(store, show_password=args.show_password)
    elif args.subcmd == "get":
        return cmd_get(store, args.key)
    elif args.subcmd == "set":
        return cmd_set(store, args.key, args.value)
    elif args.subcmd == "reset":
        return cmd_reset(store, args.key)
    elif args.subcmd == "merge":
        return cmd_merge(store, args)
    elif args.subcmd == "prefs":
        return cmd_prefs(
            args.action, args.name, args.value, global_flag=args.global_flag
        )
    else:
        parser.print_help()
        return 1
