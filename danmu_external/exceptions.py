"""弹幕聚合流程中使用的异常类型。"""
import json
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx


class DanmuError(Exception):
    """所有弹幕聚合异常的基类。"""


class DanmuValidationError(DanmuError):
    """请求缺少必需参数，对应 HTTP 400，不重试。"""


class UpstreamError(DanmuError):
    """外部服务（豆瓣、搜索接口、弹幕源）调用失败。只在本阶段内部记录并吸收。"""

    def __init__(self, message: str, source: str = "", url: Optional[str] = None):
        super().__init__(message)
        self.source = source
        self.url = url


class UpstreamTimeout(UpstreamError):
    """外部服务请求超时。"""


class UpstreamHTTPError(UpstreamError):
    """外部服务返回非 2xx 状态码，或连接失败。"""

    def __init__(self, message: str, source: str = "", url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, source=source, url=url)
        self.status_code = status_code


class UpstreamParseError(UpstreamError):
    """外部服务的响应无法解析。"""


@contextmanager
def upstream_errors(source: str, url: Optional[str] = None) -> Iterator[None]:
    """把 httpx 和 JSON 解码异常转换为对应的 Upstream* 异常。"""
    try:
        yield
    except httpx.TimeoutException as e:
        raise UpstreamTimeout(f"{source} 请求超时", source=source, url=url) from e
    except httpx.HTTPStatusError as e:
        raise UpstreamHTTPError(
            f"{source} 返回状态码 {e.response.status_code}",
            source=source, url=url, status_code=e.response.status_code,
        ) from e
    except httpx.HTTPError as e:
        raise UpstreamHTTPError(f"{source} 请求失败: {e}", source=source, url=url) from e
    except json.JSONDecodeError as e:
        raise UpstreamParseError(f"{source} 返回了无效的JSON: {e}", source=source, url=url) from e
