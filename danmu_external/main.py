import logging
import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# 内部模块导入
from ._version import APP_VERSION
from .api import api_router
from .config import Settings, settings
from .config_manager import ConfigManager
from .danmu_aggregator import DanmuAggregator
from .default_configs import get_default_configs
from .extractors import default_extractors
from .log_manager import setup_logging
from .provider_chain import ProviderChain
from .providers import build_providers
from .rate_limiter import RateLimitedFetcher
from .resolver import PlatformUrlResolver
from .sources import DoubanPageSource, TitleSearchSource
from .transport_manager import TransportManager

logger = logging.getLogger(__name__)


def build_aggregator(
    app_settings: Settings,
    transport_manager: TransportManager,
    config_manager: ConfigManager,
    fetcher: RateLimitedFetcher,
    rng: Optional[random.Random] = None,
) -> DanmuAggregator:
    """按静态配置组装 解析器 -> 弹幕源链 -> 聚合器。"""
    resolver_settings = app_settings.resolver
    primary = DoubanPageSource(
        transport_manager,
        fetcher,
        config_manager,
        extractors=default_extractors(include_direct_links=resolver_settings.include_direct_links),
        base_url=resolver_settings.douban_base_url,
        timeout=resolver_settings.douban_timeout,
        jitter=resolver_settings.douban_jitter,
    )
    fallback = TitleSearchSource(
        transport_manager,
        config_manager,
        base_url=resolver_settings.caiji_base_url,
        timeout=resolver_settings.caiji_timeout,
        denylist=resolver_settings.title_denylist,
    )
    chain = ProviderChain(
        build_providers(app_settings, transport_manager, config_manager, rng=rng),
        min_threshold=app_settings.providers.min_threshold,
    )
    return DanmuAggregator(PlatformUrlResolver(primary, fallback), chain)


def create_app(
    app_settings: Settings = settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    initial_config: Optional[Dict[str, Any]] = None,
    rng: Optional[random.Random] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    创建应用实例。
    测试时可以传入固定的 transport (httpx.MockTransport) 和运行时配置。
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        应用生命周期管理器。
        - `yield` 之前的部分在应用启动时执行。
        - `yield` 之后的部分在应用关闭时执行。
        """
        # --- Startup Logic ---
        if configure_logging:
            setup_logging(Path(app_settings.log.directory), level=app_settings.log.level)
        logger.info(f"Danmu External API 版本 {APP_VERSION} 正在启动 (环境: {app_settings.environment})...")

        # 初始化配置管理器并注册默认配置
        app.state.config_manager = ConfigManager(initial=initial_config)
        await app.state.config_manager.register_defaults(get_default_configs(settings=app_settings))

        app.state.transport_manager = TransportManager(app.state.config_manager, transport=transport)
        # 全进程唯一的限速器，所有请求共享同一份源站时间戳
        app.state.rate_limiter = RateLimitedFetcher(
            min_interval=app_settings.resolver.min_request_interval,
            rng=rng,
        )
        app.state.danmu_aggregator = build_aggregator(
            app_settings,
            app.state.transport_manager,
            app.state.config_manager,
            app.state.rate_limiter,
            rng=rng,
        )
        logger.info("应用启动完成")

        yield

        # --- Shutdown Logic ---
        logger.info("应用正在关闭...")
        await app.state.transport_manager.close_all()
        logger.info("应用已完全关闭")

    app = FastAPI(
        title="Danmu External API",
        description="聚合各视频平台的外部弹幕，供播放器直接加载。",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    # 配置CORS，允许播放器页面跨域访问
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


def run():
    """命令行入口，使用配置中的监听地址和端口启动服务。"""
    uvicorn.run(
        "danmu_external.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.environment == "development"  # 开发环境启用自动重载
    )


# 这样就可以通过 `python -m danmu_external.main` 来运行，并自动使用 config.yml 中的端口和主机
if __name__ == "__main__":
    run()
