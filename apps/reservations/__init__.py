"""Reservations app package.

This app encapsulates the reservation engine: availability calculation,
pricing, reservation numbering, recurrence expansion and the reservation
lifecycle. Double booking is prevented by re-validating capacity under a
per-resource lock inside the same transaction that inserts the row.
"""
