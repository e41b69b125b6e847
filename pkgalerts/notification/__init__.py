"""Notification delivery package.

Renders pending change records into one HTML message, fans it out to the
subscriber list over SMTP, and reports a receipt per recipient.
"""
