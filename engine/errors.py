"""
Coincache — engine/errors.py
Exceptions raised inside the persistence layer.
"""


class SaveError(Exception):
    """Base class for save/load failures."""


class CorruptSaveError(SaveError):
    """A save blob could not be decoded or failed validation."""
