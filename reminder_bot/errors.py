"""Exceptions raised across the reminder bot."""


class ReminderBotError(Exception):
    """Base class for reminder bot errors."""


class ConfigurationError(ReminderBotError):
    """Required configuration is missing or invalid."""


class StoreUnavailable(ReminderBotError):
    """The reminder store could not complete an operation."""


class DeliveryFailed(ReminderBotError):
    """The messaging platform rejected or failed to deliver a message."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code
