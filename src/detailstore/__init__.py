"""
detailstore: relational columns plus a JSON detail column.

Entities keep their declared columns as ordinary table columns and every
other attribute inside one JSON column named "detail". Queries address both
kinds of attribute the same way; the column resolver decides where each
reference lives.
"""

__version__ = "0.1.0"
