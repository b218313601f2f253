"""Alert lifecycle layer.

This package owns the persisted acknowledge/snooze state and is the only
place that decides whether an alert candidate is shown.
"""
