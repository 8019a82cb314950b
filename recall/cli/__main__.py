"""
Entry point for running recall as a module.

Usage:
    python -m recall.cli queue
    python -m recall.cli grade <item-id> good
    python -m recall.cli --help
"""
from .main import main

if __name__ == "__main__":
    main()
