"""Exceptions raised by the model layer."""


class ValidationError(ValueError):
    """Raised when submitted data breaks a model field rule."""
