#services/exceptions.py


class BookingError(Exception):
    pass




class NotificationError(BookingError):
    pass




class NotificationPreconditionError(NotificationError):
    """Event is missing data the webhook contract requires (e.g. bookingId)."""
    pass




class PaymentError(BookingError):
    pass




class PaymentConfigurationError(PaymentError):
    """Payment provider credentials are not configured."""
    pass
