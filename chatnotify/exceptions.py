"""Exceptions raised by chatnotify.

Delivery failures are never raised; they are logged by the transport.
Only misconfiguration and missing content surface as exceptions.
"""


class NotifyError(Exception):
    """Base class for all chatnotify errors."""


class ConfigurationError(NotifyError):
    """No usable destination could be resolved for a message."""


class MessageValidationError(NotifyError):
    """A message is missing content required by its provider."""


class MessageAlreadySentError(NotifyError):
    """A message builder was mutated or sent again after send()."""
