"""
Celery tasks module
Import all tasks here so Celery can discover them
"""
from . import booking_tasks

__all__ = ['booking_tasks']
