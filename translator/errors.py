"""Errors raised by the translation layer."""


class TranslationError(ValueError):
    """A request or response could not be translated between formats."""
