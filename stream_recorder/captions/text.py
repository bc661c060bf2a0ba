"""Caption text cleaning and UI-noise filtering."""

import re

# Lowercase substrings that mark a text as player chrome rather than a caption
FILTER_KEYWORDS: tuple[str, ...] = (
    "ai原声翻译",
    "ai原声翻译（beta）",
    "ai原声翻译(beta)",
    "ai原声翻译（beta",
    "ai原声翻译(beta",
    "原声翻译",
    "ai小助手",
    "测试版",
    "加载中",
    "loading",
    "fullscreen",
    "播放器",
    "视频",
    "暂停",
    "播放",
    "全屏",
    "音量",
    "设置",
    "分享",
    "收藏",
    "点赞",
    "投币",
    "关注",
    "弹幕",
    "字幕",
    "清晰度",
    "beta",
    "beta)",
    "（beta）",
    "(beta)",
)

# "AI原声翻译（Beta）", "原声翻译(Beta)", "AI原声翻译", "原声翻译"
_LABEL = r"(?:AI)?原声翻译(?:[（(]?Beta[）)]?)?"
_LEADING_LABEL = re.compile(rf"^{_LABEL}\s*", re.IGNORECASE)
_TRAILING_LABEL = re.compile(rf"\s*{_LABEL}$", re.IGNORECASE)
# Mid-text labels are only removed in their Beta form
_INNER_LABEL = re.compile(r"\s+(?:AI)?原声翻译[（(]?Beta[）)]?\s+", re.IGNORECASE)
_BLANK_LINES = re.compile(r"\n\s*\n")
_WHITESPACE = re.compile(r"\s+")


def is_filtered_text(text: str) -> bool:
    """Return True if the text contains any UI-chrome keyword."""
    lowered = text.strip().lower()
    return any(keyword in lowered for keyword in FILTER_KEYWORDS)


def clean_caption_text(text: str) -> str:
    """
    Strip translation labels and normalise whitespace.

    Returns an empty string for empty input.
    """
    if not text:
        return ""

    cleaned = text.strip()
    cleaned = _LEADING_LABEL.sub("", cleaned)
    cleaned = _TRAILING_LABEL.sub("", cleaned)
    cleaned = _INNER_LABEL.sub(" ", cleaned)
    cleaned = _BLANK_LINES.sub("\n", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    return cleaned.strip()
