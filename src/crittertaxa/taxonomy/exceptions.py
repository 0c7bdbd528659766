"""Error types raised by the taxonomy and name-verification subsystems.

Every error is terminal for the operation that raised it; nothing in this
package retries. Messages always name the offending species name or taxon id.
"""


class TaxonomyError(Exception):
    """Base class for all lookup, cache and classification failures."""


class NetworkError(TaxonomyError):
    """The upstream service could not be reached or answered with an error status."""


class DecodeError(TaxonomyError):
    """The upstream response body (or a cached blob) could not be decoded."""


class NotFoundError(TaxonomyError):
    """The upstream service returned no match for a name or id query."""


class OfflineModeError(TaxonomyError):
    """A cache miss occurred while explicitly operating offline."""


class CacheError(TaxonomyError):
    """Local cache storage failed."""


class InvalidArgumentError(TaxonomyError):
    """A lookup was requested with invalid arguments, e.g. an empty id batch."""


class InconsistentUpstreamResponseError(TaxonomyError):
    """The verification service matched a name but returned no results for it."""
