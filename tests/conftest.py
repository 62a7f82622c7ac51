"""
Pytest 全局配置

提供：
- 示例用户与示例批注
- 伪造的 Gemini 响应
- 不联网的 Gemini 客户端
"""

import base64
import json
from types import SimpleNamespace
from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest

from tianji.core.models import UserInfo


# ==================== 数据 Fixtures ====================

@pytest.fixture
def primary_user() -> UserInfo:
    """示例本人信息"""
    return UserInfo(
        name="张三",
        birth_date="1990-01-01",
        birth_time="08:30",
        birth_place="北京",
        gender="男",
    )


@pytest.fixture
def partner_user() -> UserInfo:
    """示例对方信息"""
    return UserInfo(name="李四", birth_date="1992-02-02", gender="女")


@pytest.fixture
def fortune_payload() -> Dict[str, Any]:
    """符合输出约束的每日运势"""
    return {
        "bazi": "庚午 丙子 甲子 戊辰",
        "score": 88,
        "summary": "紫气东来，万事顺遂",
        "insight": "今日木火相生，贵人在东。",
        "todo": ["晨起读书", "拜访故友", "整理旧物"],
        "notodo": ["远行涉水", "争执口舌", "大额借贷"],
        "imagePrompt": "mountain mist at dawn",
        "fiveElements": "木火旺",
        "luckyColor": "朱红",
        "luckyDirection": "东南",
    }


@pytest.fixture
def compatibility_payload() -> Dict[str, Any]:
    """符合输出约束的合婚批注"""
    return {
        "baziA": "庚午 丙子 甲子 戊辰",
        "baziB": "壬申 壬寅 乙丑 丙子",
        "score": 76,
        "matchAnalysis": "二人水木相生，情意绵长。",
        "fiveElementMatch": "水生木",
        "dynamic": "相敬如宾",
        "todo": ["共赏明月", "同修家宅", "互赠信物"],
        "notodo": ["翻旧账本", "冷言相向", "分居两地"],
        "advice": "遇事多商量",
        "imagePrompt": "two cranes over a lake",
    }


@pytest.fixture
def fortune_json(fortune_payload) -> str:
    return json.dumps(fortune_payload, ensure_ascii=False)


@pytest.fixture
def compatibility_json(compatibility_payload) -> str:
    return json.dumps(compatibility_payload, ensure_ascii=False)


@pytest.fixture
def pcm_bytes() -> bytes:
    """四个 PCM16 采样：0, 16384, -16384, -32768"""
    return b"\x00\x00\x00\x40\x00\xc0\x00\x80"


@pytest.fixture
def pcm_base64(pcm_bytes) -> str:
    return base64.b64encode(pcm_bytes).decode("ascii")


@pytest.fixture
def png_bytes() -> bytes:
    """一张 8x8 的 PNG"""
    from io import BytesIO

    from PIL import Image

    buf = BytesIO()
    Image.new("RGB", (8, 8), "#336699").save(buf, format="PNG")
    return buf.getvalue()


# ==================== Gemini Fixtures ====================

def make_sdk_response(text: str = "", audio: Any = None) -> SimpleNamespace:
    """伪造 google-genai 的 GenerateContentResponse"""
    parts = []
    if audio is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=audio, mime_type="audio/pcm")))
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
    )


@pytest.fixture
def fake_client(fortune_json, pcm_bytes) -> MagicMock:
    """
    不联网的 GeminiClient 替身

    generate_json 返回示例运势，generate_speech 返回 PCM，
    generate_image 返回空（无配图）。
    """
    client = MagicMock()
    client.is_available = True
    client.generate_json = AsyncMock(return_value=fortune_json)
    client.generate_speech = AsyncMock(return_value=pcm_bytes)
    client.generate_image = AsyncMock(return_value=None)
    return client


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def sleep() -> AsyncMock:
    """记录重试等待的 sleep"""
    return AsyncMock(side_effect=no_sleep)


@pytest.fixture
def sdk_response():
    """伪造 SDK 响应的工厂"""
    return make_sdk_response
