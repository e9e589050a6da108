"""
API依赖注入函数
提供FastAPI端点所需的各种管理器和服务
"""

from fastapi import Request

from ..danmu_aggregator import DanmuAggregator


async def get_danmu_aggregator(request: Request) -> DanmuAggregator:
    """依赖项：从应用状态获取外部弹幕聚合器"""
    return request.app.state.danmu_aggregator
