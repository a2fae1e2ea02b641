"""
Background jobs: mailbox sync, cleanup and pending email count.
"""

from .cleanup import run_cleanup_actions_job, run_cleanup_job
from .count_new_emails import run_count_new_emails_job
from .daily_sync import JobResult, run_daily_sync_job, sync_user
from .scheduler import JobScheduler

__all__ = [
    'JobResult',
    'JobScheduler',
    'run_cleanup_actions_job',
    'run_cleanup_job',
    'run_count_new_emails_job',
    'run_daily_sync_job',
    'sync_user'
]
