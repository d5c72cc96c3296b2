"""Exception taxonomy for the query pipeline and its collaborators."""


class PolicyQAError(Exception):
    """Base class for all policyqa errors."""


class EmbeddingError(PolicyQAError):
    """The embedding provider returned nothing or could not be reached."""


class ProviderError(PolicyQAError):
    """A remote model call failed."""


class ParseError(PolicyQAError):
    """The generative model's answer did not match the expected JSON shape."""


class CodecError(PolicyQAError):
    """Vector bytes could not be encoded or decoded."""


class UnsupportedFormat(PolicyQAError):
    """No text extractor exists for the given media type."""


class ExtractionError(PolicyQAError):
    """A supported file could not be read (corrupt, truncated or mis-encoded)."""
