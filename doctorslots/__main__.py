"""
Entry point for ``python -m doctorslots``.

Usage: python -m doctorslots [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
