"""
Shared kernel of the reservation engine

Domain base classes and value objects (Money, TimeRange) plus the
application plumbing every app builds on: the message bus and the
units of work that publish events after commit.
"""
