"""
仪表盘会话启动流程。

先加载配置，加载完成后才应用主题、解析图标，避免在真实配置可用时使用默认数据渲染。
退出会话时停止所有数据流并清除本次应用的主题变量。
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional

from herbst.client import DashboardClient
from herbst.config_loader import ConfigLoader
from herbst.config_schema import HerbstConfig, ServiceSection
from herbst.display import merge_services
from herbst.errors import ThemeError
from herbst.events import HttpEventChannel
from herbst.feed_state import BackoffPolicy
from herbst.icons import resolve_section_icons
from herbst.live_state import ChannelFactory, LiveStateStore
from herbst.theme import StyleRoot, ThemeApplier
from herbst.themes import ThemeCatalog

logger = logging.getLogger(__name__)


@dataclass
class DashboardSession:
    config: HerbstConfig
    sections: List[ServiceSection]
    # 以下两项与 sections 一一对应，按服务名索引
    icons: List[Dict[str, Optional[str]]]
    theme: ThemeApplier
    live: LiveStateStore
    notice: Optional[str] = None
    online: List[Dict[str, bool]] = field(default_factory=list)


async def check_online_badges(client: DashboardClient, sections: List[ServiceSection]) -> List[Dict[str, bool]]:
    """并发检查所有需要在线徽标的服务，结果按 section 顺序返回。"""
    targets = [
        (index, service)
        for index, section in enumerate(sections)
        for service in section.services
        if service.online_badge
    ]
    results = await asyncio.gather(*(client.check_online(service.url) for _, service in targets))

    online: List[Dict[str, bool]] = [{} for _ in sections]
    for (index, service), is_online in zip(targets, results):
        online[index][service.name] = is_online
    return online


@asynccontextmanager
async def dashboard_session(
    client: DashboardClient,
    root: StyleRoot,
    theme_catalog: Optional[ThemeCatalog] = None,
    channel_factory: Optional[ChannelFactory] = None,
    policy: Optional[BackoffPolicy] = None,
    check_badges: bool = False,
) -> AsyncIterator[DashboardSession]:
    loader = ConfigLoader(client, theme_catalog=theme_catalog)
    result = await loader.load_or_default()
    config = result.config

    applier = ThemeApplier(root)
    try:
        applier.apply(config.theme_vars)
    except ThemeError as e:
        logger.error(f"Theme not applied: {e}")

    sections = merge_services(config)
    icons = resolve_section_icons(sections)

    if channel_factory is None:
        channel_factory = lambda kind: HttpEventChannel(client)

    store = LiveStateStore(config, channel_factory, policy=policy)
    session = DashboardSession(
        config=config,
        sections=sections,
        icons=icons,
        theme=applier,
        live=store,
        notice=result.notice,
        online=[{} for _ in sections],
    )
    if check_badges:
        session.online = await check_online_badges(client, sections)

    await store.start()
    try:
        yield session
    finally:
        await store.stop()
        applier.clear()
