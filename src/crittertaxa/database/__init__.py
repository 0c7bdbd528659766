"""Database package for crittertaxa.

Database components should be imported directly from their modules:
from crittertaxa.database.core import DatabaseService
"""
