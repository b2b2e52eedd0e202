"""
Exception taxonomy for pipeline runs.

Every error that aborts a run derives from PipelineError so callers can
surface a single descriptive message. Soft degrades are logged, never raised.
"""


class PipelineError(Exception):
    """Base class for errors that abort a pipeline run."""


class InvalidConfigurationError(PipelineError):
    """A pipeline definition cannot be executed as written.

    Raised for unsupported node types, a retriever without a source, or a
    tool node whose tool name is missing or not registered.
    """


class NotFoundError(PipelineError):
    """A pipeline or knowledge source referenced at run time does not exist."""


class UpstreamError(PipelineError):
    """An external collaborator (model invoker) failed; carries its message."""
