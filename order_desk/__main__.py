"""``python -m order_desk``: run an order-desk command such as ``contacts`` or ``dispatch``.

Called without a command it prints the command overview instead of
argparse's terse usage error.
"""
from __future__ import annotations

import sys

from . import cli


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if args:
        return cli.main(args)

    cli.build_parser(prog="python -m order_desk").print_help()
    return 2


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
