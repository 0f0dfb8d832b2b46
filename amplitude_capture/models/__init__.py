"""Models namespace – API request and response shapes.

Call-sites can simply::

    from amplitude_capture.models import Event, BatchEventsSuccessSummary
"""

from amplitude_capture.models.events import BatchEventsSuccessSummary, Event

__all__ = ["BatchEventsSuccessSummary", "Event"]
