"""
日志配置

- 控制台 + 轮转文件 app.log
- 内存中的最近日志，供 /api/logs 查看
- provider_responses.log：弹幕源和豆瓣的原始响应，仅在运行时配置 providerLogResponses=true 时写入
"""
import collections
import logging
import logging.handlers
from pathlib import Path
from typing import Deque, List, Optional

from .config import settings

PROVIDER_RESPONSES_LOGGER = "provider_responses"
RECENT_LOG_LIMIT = 200

_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
_VERBOSE_FORMAT = '[%(asctime)s] [%(name)s:%(lineno)d] [%(levelname)s] - %(message)s'

_logs_deque: Deque[str] = collections.deque(maxlen=RECENT_LOG_LIMIT)


class DequeHandler(logging.Handler):
    """把格式化后的日志放进双端队列，最新的在最前面。"""

    def __init__(self, deque: Deque[str]):
        super().__init__()
        self.deque = deque

    def emit(self, record):
        self.deque.appendleft(self.format(record))


class NoHttpxLogFilter(logging.Filter):
    def filter(self, record):
        return not record.name.startswith(('httpx', 'httpcore'))


def _ensure_log_dir(log_dir: Path) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir
    except OSError as e:
        # 日志还没配置好，只能直接输出
        print(f"警告: 无法创建日志目录 {log_dir}: {e}，将使用当前目录")
        return Path(".")


def _setup_responses_logger(log_dir: Path) -> Path:
    """原始响应体很大，单独写文件且不向根记录器传播。每次启动时清空。"""
    responses_log_file = log_dir / "provider_responses.log"
    if responses_log_file.exists():
        try:
            responses_log_file.write_text('', encoding='utf-8')
        except OSError as e:
            logging.error(f"清空响应日志文件失败: {e}")

    responses_logger = logging.getLogger(PROVIDER_RESPONSES_LOGGER)
    responses_logger.setLevel(logging.DEBUG)
    responses_logger.propagate = False
    responses_logger.handlers.clear()

    handler = logging.handlers.RotatingFileHandler(
        responses_log_file, maxBytes=10 * 1024 * 1024, backupCount=3, encoding='utf-8'
    )
    handler.setFormatter(logging.Formatter('[%(asctime)s] - %(message)s', datefmt=_DATE_FORMAT))
    responses_logger.addHandler(handler)
    return responses_log_file


def setup_logging(log_dir: Optional[Path] = None, level: Optional[str] = None):
    """
    配置根日志记录器。应在应用启动时调用一次；
    重复调用（如热重载）会先清掉已有的处理器。
    """
    log_dir = _ensure_log_dir(log_dir or Path(settings.log.directory))
    log_file = log_dir / "app.log"
    log_level = getattr(logging, (level or settings.log.level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    verbose_formatter = logging.Formatter(_VERBOSE_FORMAT, datefmt=_DATE_FORMAT)
    for handler in (
        logging.StreamHandler(),
        logging.handlers.RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5, encoding='utf-8'),
    ):
        handler.setFormatter(verbose_formatter)
        root.addHandler(handler)

    deque_handler = DequeHandler(_logs_deque)
    deque_handler.setFormatter(logging.Formatter('[%(asctime)s] %(message)s', datefmt=_DATE_FORMAT))
    deque_handler.addFilter(NoHttpxLogFilter())
    root.addHandler(deque_handler)

    # 每个弹幕源请求都会产生一条 httpx 日志
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    responses_log_file = _setup_responses_logger(log_dir)
    logging.info(f"日志系统已初始化: {log_file} (级别 {logging.getLevelName(log_level)})，原始响应日志: {responses_log_file}")


def get_logs(limit: Optional[int] = None) -> List[str]:
    """返回内存中的最近日志，最新的在前。"""
    logs = list(_logs_deque)
    return logs[:limit] if limit else logs
