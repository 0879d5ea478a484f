"""
Entry point for running study-tracker as a module.

Usage:
    python -m study_tracker status
    python -m study_tracker --help
"""
from .cli.main import main

if __name__ == "__main__":
    main()
