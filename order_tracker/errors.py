class OrderTrackingError(Exception):
    """Base class for errors raised by the order tracking core."""


class StoreUnavailable(OrderTrackingError):
    """The order store could not be reached or the query failed. Transient."""


class ValidationError(OrderTrackingError):
    """An order draft was malformed."""


class NotFound(OrderTrackingError):
    """A referenced order id does not exist."""
