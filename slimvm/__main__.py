"""Entry point for ``python -m slimvm``."""

from slimvm.cli import app

if __name__ == "__main__":
    app()
