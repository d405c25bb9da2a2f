"""
Exception types raised across the proofreading pipeline.

None of these is fatal to a proofreading run: the pipeline catches them per
element, logs, and moves on to the next candidate.
"""


class ProofreaderError(Exception):
    """Base class for all proofreader errors."""
    pass


class ConfigError(ProofreaderError, ValueError):
    """Raised when a configuration value is out of range."""
    pass


class SelectorError(ProofreaderError):
    """Raised when a CSS selector cannot be evaluated."""
    pass


class CorrectionServiceError(ProofreaderError):
    """Raised when the correction service rejects a request or fails."""
    pass


class MalformedResponseError(CorrectionServiceError):
    """Raised when the correction service returns data that cannot be used."""
    pass


class RenderingError(ProofreaderError):
    """Raised when annotation markup cannot be applied to an element."""
    pass


class ContentLoadError(ProofreaderError):
    """Raised when a page cannot be loaded or parsed."""
    pass
