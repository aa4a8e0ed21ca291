"""Resources app package.

Read-mostly catalog of bookable resources (rooms, equipment, services,
vehicles, people). The reservation engine reads resources through the
catalog interface and never mutates them; administrative changes go
through the Django admin or the explicit services in this app.
"""
