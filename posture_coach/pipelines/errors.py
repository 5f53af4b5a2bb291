"""
Exception taxonomy for the analysis pipeline.

Low-visibility frames, unmatched poses and unscorable poses are *not*
exceptions: they degrade to ``None``, ``"Unknown"`` and a placeholder
evaluation respectively.
"""


class InvalidInputError(ValueError):
    """Malformed landmark input (wrong landmark count or shape)."""


class ConfigurationError(ValueError):
    """Invalid reference library, threshold file or recommendation table."""


class AnalysisError(RuntimeError):
    """Pipeline-fatal condition raised before any batch phase begins."""


class AnalysisCancelled(AnalysisError):
    """The batch run was aborted by the caller between two frames."""
