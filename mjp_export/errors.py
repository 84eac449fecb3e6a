"""
Error types for the batch export.

Only two conditions are exceptions. Everything else that can go wrong with a
single message (load timeout, completion timeout, missing proof button) is
recorded on the item's result and the batch moves on.
"""


class ListingError(RuntimeError):
    """Transport failure or non-success response from the listing API.

    Raised inside the lister and always recovered there as an empty feed.
    """


class EmptyQueueError(RuntimeError):
    """Nothing to process after listing. Fatal for the run as a whole."""
