"""定时任务."""

from feedsync.scheduler.tasks import (
    REFRESH_JOB_ID,
    create_scheduler,
    refresh_directory_task,
    shutdown_scheduler,
)

__all__ = [
    "REFRESH_JOB_ID",
    "create_scheduler",
    "refresh_directory_task",
    "shutdown_scheduler",
]
