"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class StoreError(DomainException):
    """A storage collaborator failed to read or write"""

    pass


class PaymentPersistenceError(DomainException):
    """A user-initiated confirmation could not be persisted"""

    pass


class NotificationDeliveryError(DomainException):
    """Notification service rejected or did not answer a send"""

    pass
