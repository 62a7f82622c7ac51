"""Card layout engine for reading results.

Renders a reading to a single PNG the way the front-end card shows it:
title, illustration, bazi, score and verdict, the master's narrative and
the auspicious/taboo lists, on a paper-coloured background. All sizes are
given in layout pixels and multiplied by the export scale.
"""

import base64
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Tuple, Union

from PIL import Image, ImageDraw, ImageFont

from tianji.core.models import Tab
from tianji.core.state import Reading

logger = logging.getLogger(__name__)

# Palette
BACKGROUND = "#fdf5e6"
INK = "#5d2e0a"
CINNABAR = "#a61b1f"
GOLD = "#b8862b"
JADE = "#2f5d3a"
FADED = "#a08a70"

CARD_WIDTH = 720


class Alignment(Enum):
    """Text alignment options."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class TextSize(Enum):
    """Text size options with font sizes."""
    TINY = 12
    SMALL = 16
    MEDIUM = 22
    LARGE = 30
    TITLE = 48
    SCORE = 64


@dataclass
class TextBlock:
    """A block of text for the card."""
    text: str
    alignment: Alignment = Alignment.CENTER
    size: TextSize = TextSize.SMALL
    color: str = INK


@dataclass
class ImageBlock:
    """An image block, drawn inside a thin frame."""
    image_data: bytes
    width: int = 288
    alignment: Alignment = Alignment.CENTER


@dataclass
class SeparatorBlock:
    """A visual separator line."""
    style: str = "line"  # line, dashes, double
    thickness: int = 1
    color: str = INK


@dataclass
class SpacerBlock:
    """Vertical spacing in layout pixels."""
    pixels: int = 10


Block = Union[TextBlock, ImageBlock, SeparatorBlock, SpacerBlock]


@dataclass
class CardLayout:
    """Complete card layout definition."""
    blocks: List[Block] = field(default_factory=list)
    width: int = CARD_WIDTH
    margin_x: int = 48
    margin_y: int = 48

    def add_text(
        self,
        text: str,
        alignment: Alignment = Alignment.CENTER,
        size: TextSize = TextSize.SMALL,
        color: str = INK,
    ) -> "CardLayout":
        """Add a text block."""
        self.blocks.append(TextBlock(text=text, alignment=alignment, size=size, color=color))
        return self

    def add_image(self, image_data: bytes, width: int = 288) -> "CardLayout":
        """Add an image block."""
        self.blocks.append(ImageBlock(image_data=image_data, width=width))
        return self

    def add_separator(self, style: str = "line", thickness: int = 1, color: str = INK) -> "CardLayout":
        """Add a separator line."""
        self.blocks.append(SeparatorBlock(style=style, thickness=thickness, color=color))
        return self

    def add_space(self, pixels: int = 10) -> "CardLayout":
        """Add vertical spacing."""
        self.blocks.append(SpacerBlock(pixels=pixels))
        return self


# CJK-capable fonts, first hit wins
FONT_PATHS = [
    "/usr/share/fonts/opentype/noto/NotoSerifCJK-Regular.ttc",
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
    "/System/Library/Fonts/PingFang.ttc",
    "/System/Library/Fonts/STHeiti Medium.ttc",
    "C:/Windows/Fonts/msyh.ttc",
]


def image_bytes_from_data_url(url: Optional[str]) -> Optional[bytes]:
    """Decode a ``data:<mime>;base64,<data>`` URL; other URLs give None."""
    if not url or not url.startswith("data:") or "," not in url:
        return None
    header, payload = url.split(",", 1)
    if not header.endswith(";base64"):
        return None
    try:
        return base64.b64decode(payload)
    except ValueError as e:
        logger.warning(f"Invalid image data URL: {e}")
        return None


class CardRenderer:
    """Renders card layouts to RGB images.

    Layout is done twice: a measuring pass to find the content height,
    then the drawing pass on a canvas of exactly that height.
    """

    def __init__(self, scale: int = 2, background: str = BACKGROUND, font_path: Optional[Path] = None):
        self.scale = scale
        self.background = background
        self.font_path = font_path
        self._font_cache = {}

    def _get_font(self, size: int):
        """Get a font at ``size`` device pixels, with caching."""
        if size in self._font_cache:
            return self._font_cache[size]

        paths = [str(self.font_path)] if self.font_path else []
        for path in paths + FONT_PATHS:
            try:
                font = ImageFont.truetype(path, size)
                self._font_cache[size] = font
                return font
            except (OSError, IOError):
                continue

        logger.warning("No CJK font found, falling back to the default font")
        font = ImageFont.load_default(size=size)
        self._font_cache[size] = font
        return font

    def _text_width(self, draw: ImageDraw.ImageDraw, text: str, font) -> int:
        if not text:
            return 0
        bbox = draw.textbbox((0, 0), text, font=font)
        return bbox[2] - bbox[0]

    def _wrap_text(self, text: str, font, draw: ImageDraw.ImageDraw, max_width: int) -> List[str]:
        """Wrap text to fit within the given pixel width.

        Words that do not fit (any CJK run) are broken per character.
        """
        if not text:
            return [""]

        lines: List[str] = []
        for raw in text.split("\n"):
            words = raw.split()
            if not words:
                lines.append("")
                continue

            current = ""
            for word in words:
                candidate = f"{current} {word}" if current else word
                if self._text_width(draw, candidate, font) <= max_width:
                    current = candidate
                    continue

                if current and self._text_width(draw, word, font) <= max_width:
                    lines.append(current)
                    current = word
                    continue

                # Break character by character
                if current:
                    current += " "
                for char in word:
                    test = current + char
                    if self._text_width(draw, test, font) > max_width and current.strip():
                        lines.append(current.rstrip())
                        current = char
                    else:
                        current = test

            if current:
                lines.append(current)

        return lines or [""]

    def _aligned_x(self, alignment: Alignment, margin_x: int, content_width: int, item_width: int) -> int:
        if alignment == Alignment.CENTER:
            x = margin_x + (content_width - item_width) // 2
        elif alignment == Alignment.RIGHT:
            x = margin_x + content_width - item_width
        else:
            x = margin_x
        return max(margin_x, x)

    def _render_text_block(self, img, draw, block: TextBlock, margin_x: int, y_pos: int, content_width: int) -> int:
        font_size = block.size.value * self.scale
        font = self._get_font(font_size)
        line_height = int(font_size * 1.45)

        for line in self._wrap_text(block.text, font, draw, content_width):
            if img is not None:
                x = self._aligned_x(block.alignment, margin_x, content_width, self._text_width(draw, line, font))
                draw.text((x, y_pos), line, font=font, fill=block.color)
            y_pos += line_height

        return y_pos

    def _render_image_block(self, img, draw, block: ImageBlock, margin_x: int, y_pos: int, content_width: int) -> int:
        try:
            block_img = Image.open(BytesIO(block.image_data)).convert("RGB")
        except Exception as e:
            logger.error(f"Failed to render image block: {e}")
            return y_pos

        frame = 12 * self.scale
        target_width = min(block.width * self.scale, content_width - 2 * frame)
        target_height = max(10, int(target_width * block_img.height / block_img.width))

        if img is not None:
            block_img = block_img.resize((target_width, target_height), Image.Resampling.LANCZOS)
            x = self._aligned_x(block.alignment, margin_x, content_width, target_width + 2 * frame)
            draw.rectangle(
                [x, y_pos, x + target_width + 2 * frame, y_pos + target_height + 2 * frame],
                fill="white",
                outline=INK,
                width=2 * self.scale,
            )
            img.paste(block_img, (x + frame, y_pos + frame))

        return y_pos + target_height + 2 * frame + 12 * self.scale

    def _render_separator_block(self, img, draw, block: SeparatorBlock, margin_x: int, y_pos: int, content_width: int) -> int:
        y_center = y_pos + 8 * self.scale
        width = block.thickness * self.scale
        right = margin_x + content_width

        if img is not None:
            if block.style == "double":
                gap = 3 * self.scale
                draw.line([(margin_x, y_center - gap), (right, y_center - gap)], fill=block.color, width=width)
                draw.line([(margin_x, y_center + gap), (right, y_center + gap)], fill=block.color, width=width)
            elif block.style == "dashes":
                dash_len, gap_len = 8 * self.scale, 4 * self.scale
                x = margin_x
                while x < right:
                    draw.line([(x, y_center), (min(x + dash_len, right), y_center)], fill=block.color, width=width)
                    x += dash_len + gap_len
            else:
                draw.line([(margin_x, y_center), (right, y_center)], fill=block.color, width=width)

        return y_pos + 16 * self.scale + width

    def _layout_pass(self, layout: CardLayout, img, draw) -> int:
        margin_x = layout.margin_x * self.scale
        content_width = (layout.width - 2 * layout.margin_x) * self.scale
        y_pos = layout.margin_y * self.scale

        for block in layout.blocks:
            if isinstance(block, TextBlock):
                y_pos = self._render_text_block(img, draw, block, margin_x, y_pos, content_width)
            elif isinstance(block, ImageBlock):
                y_pos = self._render_image_block(img, draw, block, margin_x, y_pos, content_width)
            elif isinstance(block, SeparatorBlock):
                y_pos = self._render_separator_block(img, draw, block, margin_x, y_pos, content_width)
            elif isinstance(block, SpacerBlock):
                y_pos += block.pixels * self.scale

        return y_pos + layout.margin_y * self.scale

    def render_to_image(self, layout: CardLayout) -> Image.Image:
        """Render a card layout to an RGB image."""
        width = layout.width * self.scale

        scratch = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        height = self._layout_pass(layout, None, scratch)

        img = Image.new("RGB", (width, height), self.background)
        draw = ImageDraw.Draw(img)
        self._layout_pass(layout, img, draw)
        return img

    def render_to_png(self, layout: CardLayout) -> bytes:
        """Render a card layout to PNG bytes."""
        buf = BytesIO()
        self.render_to_image(layout).save(buf, format="PNG")
        return buf.getvalue()


def _add_phrase_list(layout: CardLayout, heading: str, phrases: List[str], color: str) -> None:
    layout.add_text(heading, alignment=Alignment.LEFT, size=TextSize.SMALL, color=color)
    for phrase in phrases:
        layout.add_text(f"· {phrase}", alignment=Alignment.LEFT, size=TextSize.SMALL, color=color)
    layout.add_space(8)


def build_card_layout(reading: Reading, width: int = CARD_WIDTH) -> CardLayout:
    """Lay out a reading the way the result card presents it."""
    data = reading.data
    is_fortune = reading.tab == Tab.FORTUNE
    layout = CardLayout(width=width)

    layout.add_text("天 机 鉴" if is_fortune else "鸾 凤 合 鉴", size=TextSize.TITLE, color=CINNABAR)
    layout.add_text("AI POWERED DESTINY ANALYSIS", size=TextSize.TINY, color=FADED)
    layout.add_separator("double", color=INK)
    layout.add_space(8)

    image_data = image_bytes_from_data_url(data.image_url)
    if image_data:
        layout.add_image(image_data)

    layout.add_text("生辰八字 · BAZI", size=TextSize.TINY, color=GOLD)
    if is_fortune:
        bazi = data.bazi
    else:
        bazi = " & ".join(b for b in (data.bazi_a, data.bazi_b) if b) or "--"
    layout.add_text(bazi, size=TextSize.MEDIUM)
    layout.add_space(8)

    layout.add_text("运势评分", size=TextSize.TINY, color=GOLD)
    layout.add_text(str(data.score) if data.score else "--", size=TextSize.SCORE, color=CINNABAR)
    layout.add_text("判词", size=TextSize.TINY, color=GOLD)
    layout.add_text(data.summary if is_fortune else data.dynamic, size=TextSize.LARGE)

    if is_fortune:
        details = [
            ("五行", data.five_elements),
            ("幸运色", data.lucky_color),
            ("吉位", data.lucky_direction),
        ]
    else:
        details = [("五行合化", data.five_element_match)]
    detail_line = "    ".join(f"{label}：{value}" for label, value in details if value)
    if detail_line:
        layout.add_text(detail_line, size=TextSize.SMALL)

    layout.add_separator("line", color=CINNABAR)
    layout.add_text("大师详批", alignment=Alignment.LEFT, size=TextSize.SMALL, color=CINNABAR)
    layout.add_text(data.narrative, alignment=Alignment.LEFT, size=TextSize.SMALL)
    layout.add_separator("dashes")

    _add_phrase_list(layout, "宜 · Auspicious", data.todo, JADE)
    _add_phrase_list(layout, "忌 · Taboo", data.notodo, CINNABAR)

    closing = data.summary if is_fortune else (data.advice or data.dynamic)
    layout.add_separator("line")
    layout.add_text(f"“ {closing} ”", size=TextSize.MEDIUM)
    layout.add_space(12)
    layout.add_text("Official AI Destiny Analysis Report", alignment=Alignment.RIGHT, size=TextSize.TINY, color=FADED)
    layout.add_text("此批注由 AI 生成，仅供参考，请保持平常心", alignment=Alignment.RIGHT, size=TextSize.TINY, color=FADED)
    return layout


def export_card(
    reading: Reading,
    directory: Union[str, Path],
    renderer: Optional[CardRenderer] = None,
    filename_prefix: str = "天机鉴",
    width: int = CARD_WIDTH,
) -> Tuple[Path, Image.Image]:
    """Render a reading card and save it as ``<prefix>-<epoch ms>.png``.

    Returns:
        The written path and the rendered image
    """
    renderer = renderer or CardRenderer()
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    img = renderer.render_to_image(build_card_layout(reading, width=width))
    path = directory / f"{filename_prefix}-{int(time.time() * 1000)}.png"
    img.save(path, format="PNG")

    logger.info(f"Card exported to {path} ({img.width}x{img.height})")
    return path, img
