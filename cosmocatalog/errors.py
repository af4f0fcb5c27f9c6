"""
Exception hierarchy for catalog loading.

Every error raised by the loader derives from CatalogError so that callers
can treat a failed body, arc or file uniformly.
"""


class CatalogError(Exception):
    """Base class for all catalog loading errors."""


class CatalogParseError(CatalogError, ValueError):
    """A literal, unit or date could not be parsed."""


class InvalidUnit(CatalogParseError):
    """The unit suffix of a value is not recognized."""


class InvalidNumber(CatalogParseError):
    """The numeric portion of a value does not parse."""


class InvalidDate(CatalogParseError):
    """A date is neither a Julian date nor an ISO 8601 string."""


class SchemaError(CatalogError):
    """A required field is missing or has the wrong type."""


class UnresolvedReferenceError(CatalogError):
    """A named entity, builtin or frame could not be resolved."""


class FormatError(CatalogError):
    """An external data file is malformed."""


class TruncatedRecord(FormatError):
    """A sample record in an ephemeris or orientation file is incomplete."""


class MalformedTleRecord(FormatError):
    """A two-line element set is incomplete or badly formed."""


class UnsupportedFontFormat(FormatError):
    """A glyph atlas has an unsupported header."""


class TruncatedFontData(FormatError):
    """A glyph atlas ended before all of its data was read."""


class LimitExceeded(CatalogError):
    """A fixed resource limit was exceeded."""


class RequireTooDeep(LimitExceeded):
    """Catalog 'require' inclusion is nested too deeply."""


class ParticleLimitExceeded(LimitExceeded):
    """A particle emitter would produce too many live particles."""


class CatalogIOError(CatalogError, OSError):
    """A catalog or data file could not be read."""
