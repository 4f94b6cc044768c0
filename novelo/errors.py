#  -*- coding: utf-8 -*-
"""
Exceptions raised by the graph encoder, decoder and copier.
"""

from __future__ import annotations


class GraphError(Exception):
    """Base class for every error raised by novelo."""


class ParseError(GraphError, ValueError):
    """
    The input text is not well-formed JSON.

    Parameters
    ----------
    message : str
        Human readable description.
    lineno, colno : int or None
        Position of the failure in the input text, when known.
    """

    def __init__(self, message: str, lineno: int | None = None, colno: int | None = None) -> None:
        super().__init__(message)
        self.lineno = lineno
        self.colno = colno


class DanglingReferenceError(GraphError, LookupError):
    """
    A back-reference points to an id that was never defined.

    This only happens with truncated or tampered documents: a well-formed
    document always defines a node before any reference to it.
    """

    def __init__(self, ref: str) -> None:
        super().__init__(f"Back-reference to undefined node {ref!r}")
        self.ref = ref


__all__ = [
    'GraphError',
    'ParseError',
    'DanglingReferenceError',
]
