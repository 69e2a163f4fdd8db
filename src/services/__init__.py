"""Ticket services used by handlers.

Services are imported lazily by handlers so boto3 resources are only created
when a function actually runs.
"""

# Do NOT import services here - use lazy loading in handlers instead
