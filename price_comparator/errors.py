# price_comparator/errors.py

"""Exception types surfaced to callers of the core services."""


class PriceComparatorError(Exception):
    """Base class for every categorized price_comparator error."""


class NotFoundError(PriceComparatorError):
    """A referenced alert or product does not exist."""


class InvalidInputError(PriceComparatorError):
    """Caller input was rejected before reaching the algorithms."""
