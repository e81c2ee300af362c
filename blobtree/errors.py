"""Exception types raised by the blobtree package."""

from __future__ import annotations


class BlobtreeError(Exception):
    """Base class for blobtree errors."""


class PreconditionError(BlobtreeError, RuntimeError):
    """A caller broke the evaluation protocol.

    Raised for programmer errors only: evaluating an element whose bounding
    box is not valid, nesting ``internal_trim`` calls, un-trimming with
    mismatched lists, or removing an element from a node that does not own
    it.  These are never caught inside the package.
    """
