"""Allow running gitpack as ``python -m gitpack``."""

from gitpack.cli import cli_main

if __name__ == "__main__":
    cli_main()
