"""Sheepit command line.

Usage:
    sheepit settings <cmd>   Inspect or edit the stored client settings
"""

from __future__ import annotations

import sys


def _cmd_settings(args: list[str]) -> int:
    """Client settings file."""
    import sheepit.settings_cli

    return sheepit.settings_cli.main(args)


def main() -> None:
    args = sys.argv[1:]
    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0]
    rest = args[1:]

    if cmd == "settings":
        sys.exit(_cmd_settings(rest))
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
