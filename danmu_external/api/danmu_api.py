import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..danmu_aggregator import DanmuAggregator
from ..exceptions import DanmuValidationError
from ..log_manager import get_logs
from ..models import AggregateResponse, DanmuQuery
from .dependencies import get_danmu_aggregator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/danmu-external",
    response_model=AggregateResponse,
    response_model_exclude_none=True,
    summary="获取外部视频平台的弹幕",
)
async def get_external_danmu(
    mediaId: Optional[str] = Query(None, description="豆瓣ID"),
    douban_id: Optional[str] = Query(None, description="豆瓣ID (mediaId 的别名)"),
    title: Optional[str] = Query(None, description="影视标题，豆瓣没有结果时用于搜索"),
    year: Optional[str] = Query(None, description="年份"),
    episode: Optional[str] = Query(None, description="集数"),
    aggregator: DanmuAggregator = Depends(get_danmu_aggregator),
):
    """
    解析豆瓣页面（或资源站搜索结果）中的各平台播放链接，并发获取弹幕，
    合并去重后按时间顺序返回。单个平台获取失败时只会缺少该平台的弹幕。
    """
    media_id = mediaId if mediaId and mediaId.strip() else douban_id
    query = DanmuQuery(mediaId=media_id, title=title, year=year, episode=episode)
    try:
        return await aggregator.aggregate(query)
    except DanmuValidationError as e:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(e)})
    except Exception as e:
        logger.error(f"外部弹幕获取失败: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "获取外部弹幕失败", "danmu": []},
        )


@router.get("/logs", response_model=List[str], summary="获取最新的服务器日志")
async def get_server_logs():
    """获取存储在内存中的最新日志条目。"""
    return get_logs()
