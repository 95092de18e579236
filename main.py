"""
herbst 仪表盘入口：连接 API 运行一个仪表盘会话并记录实时状态变化。
服务端通知配置重新加载时重启会话。
"""

import asyncio
import logging
import sys

from herbst.client import DashboardClient
from herbst.live_state import LiveSnapshot
from herbst.session import dashboard_session
from herbst.settings import Settings, load_settings
from herbst.theme import InlineStyleRoot
from herbst.themes import load_theme_catalog

logger = logging.getLogger(__name__)


def _log_snapshot(snapshot: LiveSnapshot):
    parts = []
    if snapshot.weather:
        parts.append(f"weather={snapshot.weather.temp:.1f} {snapshot.weather.city}")
    if snapshot.containers is not None:
        parts.append(f"containers={len(snapshot.containers)}")
    if snapshot.system:
        parts.append(f"cpu={snapshot.system.cpu_percent:.0f}%")
    states = ", ".join(f"{k.value}:{s.state.value}" for k, s in snapshot.feeds.items() if s.enabled)
    logger.info(f"Live: {' '.join(parts) or '-'} [{states}]")


async def run(base_url: str, settings: Settings):
    catalog = load_theme_catalog(settings.themes_file) if settings.themes_file else None
    # 所有会话共用同一个样式根节点，会话退出时清除其主题变量
    root = InlineStyleRoot()

    async with DashboardClient(base_url, timeout=settings.request_timeout) as client:
        while True:
            async with dashboard_session(client, root, theme_catalog=catalog, check_badges=True) as session:
                if session.notice:
                    logger.warning(session.notice)
                logger.info(f"Dashboard '{session.config.title}' ready, {len(session.sections)} sections")
                logger.debug(f"Theme:\n{root.to_css()}")

                reload_requested = asyncio.Event()

                def on_change(snapshot: LiveSnapshot):
                    _log_snapshot(snapshot)
                    if snapshot.reload_requested:
                        reload_requested.set()

                session.live.subscribe(on_change)
                await reload_requested.wait()

            logger.info("Reloading dashboard session...")


def main():
    """入口函数。"""
    settings = load_settings()
    # 日志配置
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    base_url = sys.argv[1] if len(sys.argv) > 1 else settings.api_url
    logger.info(f"Starting herbst dashboard session (api={base_url})...")

    try:
        asyncio.run(run(base_url, settings))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
