"""Entry point for `python -m widgetizer`."""

import sys


def main():
    from widgetizer.cli import main as run_cli
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
