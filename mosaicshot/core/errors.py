"""
Exception types for MosaicShot.

Benign no-ops (empty undo, hit-test miss, zero-area selection) are never
raised; these exceptions only signal a caller that broke the
one-session / one-operation invariants.
"""


class MosaicShotError(Exception):
    """Base class for all MosaicShot errors."""


class AnnotationStateError(MosaicShotError):
    """An operation was begun while another one is still in progress."""


class SessionStateError(MosaicShotError):
    """An editing session was started while another one is active."""
