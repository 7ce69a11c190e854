"""定时任务定义."""

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from feedsync.config import Settings
from feedsync.core.errors import FeedSyncError

if TYPE_CHECKING:
    from feedsync.core.engine import ReaderEngine

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "refresh_directory_task"


async def refresh_directory_task(engine: "ReaderEngine") -> None:
    """刷新任务：重新拉取订阅目录以更新未读数."""
    if not engine.session.can_fetch:
        logger.info("会话未认证，跳过目录刷新")
        return

    try:
        feeds = await engine.directory.list_feeds()
        logger.info(f"定时刷新完成: {len(feeds)} 个 feed")
    except FeedSyncError as e:
        logger.warning(f"定时刷新失败: {e}")


def create_scheduler(engine: "ReaderEngine", settings: Settings) -> AsyncIOScheduler | None:
    """为引擎创建并启动定时刷新调度器，间隔为 0 时不启动.

    每个引擎持有自己的调度器，由 shutdown_scheduler 单独关闭。
    """
    if settings.refresh_interval_minutes <= 0:
        logger.debug("定时刷新已关闭")
        return None

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        refresh_directory_task,
        "interval",
        minutes=settings.refresh_interval_minutes,
        args=[engine],
        id=REFRESH_JOB_ID,
        name="订阅目录定时刷新",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"定时任务调度器已启动，刷新间隔: {settings.refresh_interval_minutes} 分钟"
    )

    return scheduler


async def shutdown_scheduler(scheduler: AsyncIOScheduler | None) -> None:
    """关闭定时任务调度器."""
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("定时任务调度器已关闭")
