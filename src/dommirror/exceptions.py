# src/dommirror/exceptions.py
"""
Custom exceptions for dommirror.

Transient tree-state problems (a path that no longer resolves) are never
raised; they are logged and skipped by the replay engine. The classes below
signal protocol or setup problems that the caller has to handle.
"""


class MirrorError(Exception):
    """Base class for all dommirror errors."""


class MarkupParseError(MirrorError, ValueError):
    """
    Raised when markup cannot be turned into a tree by the tree engine,
    e.g. when the replica is constructed from something that is not a string.
    """


class MissingFieldError(MirrorError, ValueError):
    """
    Raised when a mutation record lacks a field that is required to apply it
    (target, attribute name, or an address for a character-data target).
    """


class UnsupportedNodeKindError(MirrorError, TypeError):
    """
    Raised when an added node is neither text, a comment, nor an element with
    a usable tag name.
    """


class ReplayEngineClosedError(MirrorError, RuntimeError):
    """Raised when a replay engine is used after close()."""
