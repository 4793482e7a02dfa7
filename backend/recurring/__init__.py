# recurring/__init__.py
"""
Recurring postings.

A RecurringEntry is a journal entry template plus a schedule. The Celery
worker in recurring.tasks creates the entries when they fall due, going
through the same create command as every other caller.
"""
