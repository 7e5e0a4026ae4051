"""
Entry point for the zenctl package.

This module serves as the main entry point when running `python -m zenctl`.
"""

from .cli import main

if __name__ == "__main__":
    main()
