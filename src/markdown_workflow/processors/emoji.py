"""
Emoji processor - converts shortcodes like :rocket: to Unicode emoji.

Uses GitHub's emoji shortcode names plus a few convenient aliases. Unlike
the diagram processors it treats the whole document as a single block.
"""

import logging
import re

from .base import ArtifactType, BaseProcessor, ProcessingContext, ProcessingResult, ProcessorBlock
from .regeneration import write_if_changed

logger = logging.getLogger(__name__)

# Shortcodes need at least one letter so times like 10:30:45 are left alone
SHORTCODE_PATTERN = re.compile(r":(?=[a-zA-Z0-9_+-]*[a-zA-Z])[a-zA-Z0-9_+-]+:")

EMOJI_MAP = {
    # GitHub standard names
    "rocket": "🚀",
    "star": "⭐",
    "fire": "🔥",
    "heart": "❤️",
    "thumbsup": "👍",
    "thumbsdown": "👎",
    "warning": "⚠️",
    "information_source": "ℹ️",
    "gear": "⚙️",
    "white_check_mark": "✅",
    "heavy_check_mark": "✔️",
    "x": "❌",
    "bulb": "💡",
    "link": "🔗",
    "key": "🔑",
    "lock": "🔒",
    "unlock": "🔓",
    "mag": "🔍",
    "calendar": "📆",
    "date": "📅",
    "email": "📧",
    "phone": "☎️",
    "computer": "💻",
    "iphone": "📱",
    "cloud": "☁️",
    "sunny": "☀️",
    "crescent_moon": "🌙",
    "earth_americas": "🌎",
    "evergreen_tree": "🌲",
    "hammer": "🔨",
    "wrench": "🔧",
    "scissors": "✂️",
    "pencil2": "✏️",
    "memo": "📝",
    "art": "🎨",
    "musical_note": "🎵",
    "camera": "📷",
    "video_camera": "📹",
    "video_game": "🎮",
    "gift": "🎁",
    "trophy": "🏆",
    "medal_sports": "🏅",
    "bookmark": "🔖",
    "label": "🏷️",
    "package": "📦",
    "truck": "🚚",
    "car": "🚗",
    "airplane": "✈️",
    "ship": "🚢",
    "house": "🏠",
    "office": "🏢",
    "school": "🏫",
    "hospital": "🏥",
    "bank": "🏦",
    "coffee": "☕",
    "beer": "🍺",
    "wine_glass": "🍷",
    "pizza": "🍕",
    "cake": "🍰",
    "apple": "🍎",
    "dog": "🐕",
    "cat": "🐱",
    "bird": "🐦",
    "penguin": "🐧",
    "snake": "🐍",
    "turtle": "🐢",
    "octopus": "🐙",
    "butterfly": "🦋",
    "cherry_blossom": "🌸",
    "rose": "🌹",
    "sunflower": "🌻",
    "rainbow": "🌈",
    "snowflake": "❄️",
    "zap": "⚡",
    "boom": "💥",
    "sparkles": "✨",
    "dizzy": "💫",
    "crown": "👑",
    "gem": "💎",
    "moneybag": "💰",
    "dollar": "💵",
    "euro": "💶",
    "credit_card": "💳",
    "bar_chart": "📊",
    "chart_with_upwards_trend": "📈",
    "chart_with_downwards_trend": "📉",
    "clipboard": "📋",
    "newspaper": "📰",
    "books": "📚",
    "notebook": "📓",
    "page_facing_up": "📄",
    "scroll": "📜",
    "pushpin": "📌",
    "round_pushpin": "📍",
    "triangular_flag_on_post": "🚩",
    "crossed_flags": "🎌",
    "bust_in_silhouette": "👤",
    "busts_in_silhouette": "👥",
    "speech_balloon": "💬",
    "ok_hand": "👌",
    "muscle": "💪",
    "clap": "👏",
    "wave": "👋",
    "pray": "🙏",
    "point_right": "👉",
    "point_left": "👈",
    "heavy_plus_sign": "➕",
    "heavy_minus_sign": "➖",
    "smile": "😄",
    "blush": "😊",
    "tada": "🎉",
    "electric_plug": "🔌",
    "question": "❓",
    "exclamation": "❗",
    "hourglass": "⌛",
    "alarm_clock": "⏰",
    "construction": "🚧",
    "bug": "🐛",
    "lock_with_ink_pen": "🔏",
    "file_folder": "📁",
    "open_file_folder": "📂",
    "globe_with_meridians": "🌐",
    "handshake": "🤝",
    "briefcase": "💼",
    "mortar_board": "🎓",
    "dart": "🎯",
    "chart": "💹",
    # Convenient aliases
    "thumbs_up": "👍",
    "thumbs_down": "👎",
    "info": "ℹ️",
    "check": "✅",
    "lightbulb": "💡",
    "folder": "📂",
    "file": "📄",
    "search": "🔍",
    "clock": "🕐",
    "mobile": "📱",
    "sun": "☀️",
    "moon": "🌙",
    "earth": "🌍",
    "world": "🌍",
    "tree": "🌳",
    "pencil": "✏️",
    "music": "🎵",
    "video": "📹",
    "game": "🎮",
    "medal": "🏅",
    "flag": "🚩",
    "tag": "🏷️",
    "box": "📦",
    "plane": "✈️",
    "wine": "🍷",
    "flower": "🌸",
    "money": "💰",
    "graph": "📈",
    "book": "📚",
    "page": "📃",
}


class EmojiProcessor(BaseProcessor):
    name = "emoji"
    description = "Convert emoji shortcodes to Unicode emoji"
    intermediate_extension = ".emoji.md"

    def __init__(self, emoji_map: dict[str, str] | None = None):
        self.emoji_map = dict(EMOJI_MAP)
        if emoji_map:
            self.emoji_map.update(emoji_map)

    def add_mapping(self, shortcode: str, emoji: str) -> None:
        """Register an extra shortcode (with or without surrounding colons)."""
        self.emoji_map[shortcode.strip(":")] = emoji

    def can_process(self, content: str) -> bool:
        return SHORTCODE_PATTERN.search(content) is not None

    def detect_blocks(self, content: str) -> list[ProcessorBlock]:
        shortcodes = SHORTCODE_PATTERN.findall(content)
        if not shortcodes:
            return []
        return [
            ProcessorBlock(
                name="emoji_content",
                content=content,
                start_index=0,
                end_index=len(content),
                metadata={"shortcodes": shortcodes, "count": len(shortcodes)},
            )
        ]

    def replace_shortcodes(self, content: str) -> tuple[str, dict[str, int], list[str]]:
        """
        Substitute known shortcodes.

        Returns:
            Tuple of (new content, replacement counts per shortcode, unrecognized shortcodes)
        """
        counts: dict[str, int] = {}
        unknown: list[str] = []

        def substitute(match: re.Match[str]) -> str:
            code = match.group(0)
            emoji = self.emoji_map.get(code[1:-1])
            if emoji is None:
                if code not in unknown:
                    unknown.append(code)
                return code
            counts[code] = counts.get(code, 0) + 1
            return emoji

        return SHORTCODE_PATTERN.sub(substitute, content), counts, unknown

    def process(self, content: str, context: ProcessingContext) -> ProcessingResult:
        if not self.detect_blocks(content):
            return ProcessingResult(success=True, processed_content=content)

        self.ensure_directories(context)
        processed, counts, unknown = self.replace_shortcodes(content)

        if unknown:
            logger.warning(f"Unrecognized emoji shortcodes found: {', '.join(unknown)}")
            processed += f"\n<!-- Unrecognized emoji shortcodes: {', '.join(unknown)} -->"

        intermediate = self.intermediate_path("processed", context)
        if write_if_changed(intermediate, processed):
            logger.debug(f"Updated {intermediate.name} ({len(counts)} distinct shortcodes)")

        if counts:
            logger.info(f"Converted {sum(counts.values())} emoji shortcodes")

        return ProcessingResult(
            success=True,
            processed_content=processed,
            artifacts=[self.artifact(intermediate, ArtifactType.INTERMEDIATE, context)],
            blocks_processed=1,
        )
