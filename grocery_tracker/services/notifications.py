"""
Contact Notification Interface

Marketing/email contact tagging (e.g. "household_joined") happens as a
side effect of household flows. It is non-critical: callers catch and
log its failures and carry on.
"""

from abc import ABC, abstractmethod


class NotificationError(Exception):
    """A notification could not be delivered."""
    pass


class ContactNotifierInterface(ABC):
    """Tags contacts in the email platform."""

    @abstractmethod
    async def tag_contact(self, email: str, tags: list[str]) -> None:
        """
        Add tags to the contact with this email.

        Raises:
            NotificationError: If the email platform rejects the call
        """
        pass
