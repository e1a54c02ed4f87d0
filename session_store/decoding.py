"""
Tolerant decoding of values read from the session store.

A stored value is either a serialized JSON string, an already structured value
(dict/list/number) or nothing at all. Every read of the store goes through
this module so the string/object duck typing lives in one place.
"""

import json
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from utils.exceptions import RecoverableParseError, ErrorCodes

# 存储中的原始值: 序列化字符串 | 结构化值 | 空
Raw = Union[str, bytes, Mapping[str, Any], list, int, float, None]


def decode_stored_value(raw: Raw, key: str = "") -> Any:
    """严格解码存储值，字符串按 JSON 解析，失败时抛出 RecoverableParseError"""
    if raw is None:
        return None

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RecoverableParseError(
                f"Stored value for '{key}' is not valid UTF-8",
                ErrorCodes.PARSE_INVALID_JSON,
                {"key": key}
            ) from e

    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise RecoverableParseError(
                f"Stored value for '{key}' is not valid JSON: {e.msg}",
                ErrorCodes.PARSE_INVALID_JSON,
                {"key": key, "position": e.pos}
            ) from e
        except (ValueError, RecursionError) as e:
            # 超长整数、嵌套过深等 json 模块不报 JSONDecodeError 的情况
            raise RecoverableParseError(
                f"Stored value for '{key}' could not be decoded: {e}",
                ErrorCodes.PARSE_INVALID_JSON,
                {"key": key}
            ) from e

    return raw


def decode_mapping(raw: Raw, key: str = "") -> Optional[Dict[str, Any]]:
    """解码为字典，非字典的结构化值视为格式错误"""
    value = decode_stored_value(raw, key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise RecoverableParseError(
            f"Stored value for '{key}' is a {type(value).__name__}, expected an object",
            ErrorCodes.PARSE_UNEXPECTED_TYPE,
            {"key": key}
        )
    return dict(value)


def tolerant_decode_mapping(raw: Raw, key: str = "") -> Tuple[Optional[Dict[str, Any]], Optional[RecoverableParseError]]:
    """宽容解码: 返回 (值, 被丢弃的错误)，从不抛出"""
    try:
        return decode_mapping(raw, key), None
    except RecoverableParseError as e:
        return None, e


def encode_stored_value(value: Any) -> str:
    """序列化为存储字符串"""
    return json.dumps(value, ensure_ascii=False)
