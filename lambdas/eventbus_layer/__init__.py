# lambdas/eventbus_layer/__init__.py
"""Shared layer for the event bus handlers: settings, metrics, PutEvents helpers."""
