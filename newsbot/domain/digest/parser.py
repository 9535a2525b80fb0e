"""
LLM 返回内容解析。

按固定顺序尝试三种格式，先匹配者生效：

1. 整段为 JSON 字符串数组
2. 单个代码块（可带语言标记），内部为 JSON 字符串数组
3. 每个非空行都以单字符列表符号开头（``-`` / ``*`` / ``•``）
"""

import json
import re
from typing import List, Optional

from ...errors import DigestParseError

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n([\s\S]*?)\n```$")
_BULLET_RE = re.compile(r"^\s*[-*•](?:\s+(.*))?$")


def _parse_json_array(text: str) -> Optional[List[str]]:
    """不是 JSON 数组时返回 None；数组中出现非字符串元素直接报错"""
    try:
        value = json.loads(text)
    except ValueError:
        return None
    if not isinstance(value, list):
        return None

    items: List[str] = []
    for index, element in enumerate(value):
        if not isinstance(element, str):
            raise DigestParseError(
                f"Digest JSON array element #{index} is {type(element).__name__}, expected string"
            )
        trimmed = element.strip()
        if trimmed:
            items.append(trimmed)
    return items


def _parse_bullets(text: str) -> Optional[List[str]]:
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return None

    items: List[str] = []
    for line in lines:
        match = _BULLET_RE.match(line)
        if match is None:
            return None
        item = (match.group(1) or "").strip()
        if item:
            items.append(item)
    return items


def parse_digest_items(raw: str) -> List[str]:
    """
    Parse a language-model response into ordered digest items.

    空数组是合法结果（模型认为没有值得发布的内容）；
    空白输入或无法识别的格式抛出 ``DigestParseError``。
    """
    if raw is None or not raw.strip():
        raise DigestParseError("Empty language-model response")

    trimmed = raw.strip()

    items = _parse_json_array(trimmed)
    if items is not None:
        return items

    fence = _FENCE_RE.match(trimmed)
    if fence is not None:
        items = _parse_json_array(fence.group(1).strip())
        if items is not None:
            return items

    items = _parse_bullets(trimmed)
    if items is not None:
        return items

    preview = trimmed[:200]
    raise DigestParseError(
        f"Unrecognized digest format: expected JSON array of strings, fenced JSON array, "
        f"or bullet list. Got: {preview!r}"
    )
