"""feedsync 命令行入口."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import typer
from rich.console import Console
from rich.table import Table

from feedsync.config import get_settings
from feedsync.core.engine import ReaderEngine
from feedsync.core.errors import FeedSyncError
from feedsync.core.views import View
from feedsync.models.item import STATUS_FIELDS, Item

logger = logging.getLogger(__name__)

console = Console()
app = typer.Typer(
    name="feedsync",
    help="Nexa 订阅阅读器命令行客户端",
    no_args_is_help=True,
)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="输出调试日志")) -> None:
    """配置日志."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _run(action: Callable[[ReaderEngine], Awaitable[None]], require_session: bool = True) -> None:
    """启动引擎执行一个命令，结束后关闭."""

    async def runner() -> None:
        engine = ReaderEngine(get_settings())
        try:
            await engine.start()
            if require_session and not engine.session.can_fetch:
                console.print("[yellow]需要登录，请先执行 feedsync login[/yellow]")
                raise typer.Exit(1)
            await action(engine)
        finally:
            await engine.close()

    try:
        asyncio.run(runner())
    except FeedSyncError as e:
        console.print(f"[red]请求失败: {e}[/red]")
        raise typer.Exit(1) from e


def _print_items(items: list[Item], title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("状态", style="magenta")
    table.add_column("标题")

    for item in items:
        flags = ("R" if item.read else "-") + ("S" if item.starred else "-") + ("L" if item.liked else "-")
        table.add_row(item.id, flags, item.title)

    console.print(table)


def _check_coordinator(engine: ReaderEngine) -> None:
    if engine.coordinator.last_error is not None:
        raise engine.coordinator.last_error


@app.command("feeds")
def feeds_command() -> None:
    """列出订阅源."""

    async def action(engine: ReaderEngine) -> None:
        table = Table(title="订阅源")
        table.add_column("ID", style="cyan")
        table.add_column("名称")
        table.add_column("未读", style="green")
        table.add_column("标签", style="yellow")

        for feed in engine.feeds:
            table.add_row(feed.id, feed.display_name, str(feed.unread_count), ", ".join(feed.tags))

        console.print(table)
        console.print(f"未读合计: {engine.directory.unread_total}")

    _run(action)


@app.command("items")
def items_command(
    view: str = typer.Argument("all", help="feed ID 或 all/unread/starred/liked/today"),
    pages: int = typer.Option(1, "--pages", "-p", min=1, help="加载的页数"),
    tag: list[str] = typer.Option([], "--tag", "-t", help="按标签过滤"),
) -> None:
    """列出文章."""

    async def action(engine: ReaderEngine) -> None:
        selected = View.tagged(*tag) if tag else View.feed(view)
        task = engine.select_view(selected)
        if task is not None:
            await task
        while engine.coordinator.pagination.page < pages:
            more = engine.load_more()
            if more is None:
                break
            await more
        _check_coordinator(engine)

        pagination = engine.coordinator.pagination
        _print_items(engine.items, f"共 {pagination.total} 篇，已加载 {len(engine.items)} 篇")

    _run(action)


@app.command("search")
def search_command(query: str = typer.Argument(..., help="搜索关键词")) -> None:
    """全文搜索."""

    async def action(engine: ReaderEngine) -> None:
        task = engine.search(query)
        if task is not None:
            await task
        _check_coordinator(engine)
        _print_items(engine.items, f"搜索: {query}")

    _run(action)


@app.command("login")
def login_command(
    password: str = typer.Option(..., prompt=True, hide_input=True, help="登录密码"),
) -> None:
    """登录并保存凭据."""

    async def action(engine: ReaderEngine) -> None:
        response = await engine.login(password)
        if response.auth_required:
            console.print("[green]✅ 登录成功[/green]")
        else:
            console.print("服务端未启用认证")

    _run(action, require_session=False)


@app.command("logout")
def logout_command() -> None:
    """清除已保存的凭据."""

    async def action(engine: ReaderEngine) -> None:
        await engine.logout()
        console.print("已登出")

    _run(action, require_session=False)


@app.command("mark")
def mark_command(
    item_id: str = typer.Argument(..., help="文章 ID"),
    field: str = typer.Argument("read", help="read / starred / liked"),
    on: bool = typer.Option(True, "--on/--off", help="设置或取消"),
) -> None:
    """修改文章状态."""
    if field not in STATUS_FIELDS:
        console.print(f"[red]不支持的状态字段: {field}[/red]")
        raise typer.Exit(2)

    async def action(engine: ReaderEngine) -> None:
        item = await engine.api.get_item(item_id)
        confirmed = await engine.update_status(item, field, on)
        if confirmed:
            console.print(f"{item.title}: {field}={on}")
        else:
            console.print("[red]服务端未确认修改[/red]")
            raise typer.Exit(1)

    _run(action)


if __name__ == "__main__":
    app()
