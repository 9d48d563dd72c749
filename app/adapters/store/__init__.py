"""Persistence adapters for user settings, sends and bounces.

Services depend on ``AbstractSendStore`` only. ``InMemorySendStore`` backs
tests and single-process development; ``SqlAlchemySendStore`` is the
production backend.
"""
