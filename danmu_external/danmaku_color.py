import logging
import math
from typing import Any, List

logger = logging.getLogger(__name__)

WHITE = 16777215
DEFAULT_HEX_COLOR = "#FFFFFF"


def normalize_color_value(value: Any) -> int:
    """将颜色值规范为 int（支持 #RRGGBB / 0x / 纯数字字符串），无法识别时返回白色。"""
    if isinstance(value, bool):
        return WHITE
    if isinstance(value, int):
        return max(0, min(WHITE, value))
    if isinstance(value, float):
        return max(0, min(WHITE, int(value))) if math.isfinite(value) else WHITE
    if isinstance(value, str):
        v = value.strip().lower()
        if not v:
            return WHITE

        # 快速检查：如果包含明显的非颜色字符（如 [bilibili]、用户名等），直接返回白色
        # 这些值通常是弹幕源把其他数据放在了颜色字段中
        if any(char in v for char in ['[', ']', ' ', '@', '_']):
            return WHITE

        try:
            if v.startswith("#"):
                hex_str = v[1:]
                if len(hex_str) == 6 and all(c in '0123456789abcdef' for c in hex_str):
                    return int(hex_str, 16)
                logger.debug("颜色格式错误（期望 #RRGGBB）: %s", value)
                return WHITE
            if v.startswith("0x"):
                return max(0, min(WHITE, int(v, 16)))
            return max(0, min(WHITE, int(float(v))))
        except (ValueError, OverflowError):
            if v.isdigit() or v.startswith('#') or v.startswith('0x'):
                logger.debug("无法解析颜色值: %s", value)
            return WHITE
    return WHITE


def to_hex_color(value: Any) -> str:
    """将任意颜色表示转换为大写的 #RRGGBB 字符串。"""
    return f"#{normalize_color_value(value):06X}"


def color_from_p_parts(parts: List[str]) -> str:
    """
    从弹幕 p 属性数组中获取颜色。
    标准格式 "时间,模式,字号,颜色,..." 的颜色在第4位；精简格式 "时间,模式,颜色" 在第3位。
    """
    if len(parts) >= 4:
        return to_hex_color(parts[3])
    if len(parts) >= 3:
        return to_hex_color(parts[2])
    return DEFAULT_HEX_COLOR
