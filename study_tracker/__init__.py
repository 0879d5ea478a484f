"""
study-tracker - revision progress across subjects, rows and rounds.

Components:
- tracker: hierarchy model, progress calculator and the optimistic mutation engine
- remote: PostgREST client for the persistence service
- importer: bulk row names from spreadsheet files
- cli: the study-tracker command
"""

__version__ = "1.0.0"
