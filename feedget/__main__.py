"""Entry point for python -m feedget."""

from feedget.commands import cli

if __name__ == "__main__":
    cli()
