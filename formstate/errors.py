"""
Error taxonomy for formstate.

Parse and encoding errors are fatal to the single operation that hit them.
Not-found errors map onto a 404 at the HTTP layer. StoreError marks a failed
round trip to the triple store; no local state survives it, so callers may
retry the whole operation.
"""


class FormStateError(Exception):
    """Base class of every error raised by formstate."""


class ParseError(FormStateError):
    """A serialized graph document could not be parsed."""


class EncodingError(FormStateError):
    """A term cannot be represented in a triple document or update request."""


class NotFoundError(FormStateError):
    pass


class TemplateNotFound(NotFoundError):
    def __init__(self, key, message=None):
        self.key = str(key)
        super().__init__(message or f"Form definition not found: {self.key}")


class TemplateChainError(TemplateNotFound):
    """An extension names a base template that cannot be resolved."""

    def __init__(self, key, base, message=None):
        self.base = str(base)
        super().__init__(
            key,
            message or f"Form definition {key} extends unresolvable base {self.base}",
        )


class InstanceNotFound(NotFoundError):
    def __init__(self, key):
        self.key = str(key)
        super().__init__(f"Form instance not found: {self.key}")


class StoreError(FormStateError):
    """Communication with the triple store failed."""
