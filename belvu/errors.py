"""
Exceptions raised by the alignment engine.

Only problems that leave the alignment unusable are raised. Recoverable
issues (coordinate mismatches, unknown colours, unknown organisms) are
logged and processing continues.
"""


class BelvuError(RuntimeError):
    """Base class for fatal alignment engine errors"""


class AlignmentParseError(BelvuError, ValueError):
    """Input could not be turned into a valid alignment"""


class AlignmentEditError(BelvuError):
    """A bulk edit would leave the alignment without columns or sequences"""


class SegmentError(BelvuError, ValueError):
    """Malformed or out-of-order match segments"""
