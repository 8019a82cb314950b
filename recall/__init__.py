"""
recall: spaced repetition scheduling engine.

The pure engine lives in recall.scheduling; recall.db provides the SQL
storage collaborator and recall.service ties the two together.
"""

__version__ = "0.1.0"
