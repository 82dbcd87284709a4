"""
Teletext Utils Error Hierarchy
==============================

TeletextError (base)
├── TeletextLoadError - input leaves no usable page (also a ValueError)
└── UnknownFormatError - no codec registered for an extension or id

TeletextFormatWarning is the warning category used when a load or save
succeeded but had to substitute or drop data.
"""


class TeletextError(Exception):
    """Base exception for all teletext-utils errors."""

    pass


class TeletextLoadError(TeletextError, ValueError):
    """
    Raised when a codec cannot produce any usable page from its input.

    The message is the single human-readable error string of the load,
    e.g. "No X/0 found." for a packet stream without a page header.
    """

    def __init__(self, message: str, format_id: str = ""):
        super().__init__(message)
        self.format_id = format_id


class UnknownFormatError(TeletextError):
    """Raised when no codec matches a format id or file extension."""

    pass


class TeletextFormatWarning(UserWarning):
    """Non-fatal substitutions or unsupported features met by a codec."""

    pass
