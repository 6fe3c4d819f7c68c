"""
Database model registry.

Importing this module registers every table with ``SQLModel.metadata``,
which ``create_all()`` and the seed script rely on.
"""

from sqlmodel import SQLModel

import clinicpos.models  # noqa: F401

metadata = SQLModel.metadata
