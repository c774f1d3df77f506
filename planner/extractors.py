"""Regex extractors over lowercased command text.

Each extractor reads the (masked) command text and returns an optional
fragment. Extractors never see each other's output except through masking:
spans claimed by an earlier extractor are blanked out (same length) so later
extractors cannot reuse them.

Pipeline order (see CommandParser):
  presets → favorites → drawings → history → timeframe → navigation →
  chart type → indicators → style → screenshot → analysis
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from domains.chart.catalog import ChartCatalog

Span = tuple[int, int]

# ─── Timeframe ────────────────────────────────────────────────────────────────

_UNIT = r"(?:minutes?|mins?|m|hours?|hrs?|h|days?|d|weeks?|wks?|w|months?|mos?|mths?)"
_TIMEFRAME_RE = re.compile(rf"\b(\d{{1,3}})\s*({_UNIT})\b")
_TIMEFRAME_KEYWORDS = {"hourly": "1h", "daily": "1D", "weekly": "1W", "monthly": "1M"}
_TIMEFRAME_KEYWORD_RE = re.compile(r"\b(hourly|daily|weekly|monthly)\b")

# suffix → singular unit word (used by describe_plan)
TIMEFRAME_UNIT_WORDS = {"m": "minute", "h": "hour", "D": "day", "W": "week", "M": "month"}


def unit_suffix(unit: str) -> str:
    if unit.startswith(("mo", "mth")):
        return "M"
    if unit.startswith("m"):
        return "m"
    if unit.startswith("h"):
        return "h"
    if unit.startswith("d"):
        return "D"
    return "W"


def normalize_timeframe(amount: str, unit: str) -> str:
    return f"{int(amount)}{unit_suffix(unit)}"


@dataclass
class TimeframeFragment:
    value: str
    spans: list[Span] = field(default_factory=list)


def extract_timeframe(text: str) -> TimeframeFragment | None:
    """Number+unit beats keyword; the last match of the winning class is used.

    `spans` holds every number+unit match so indicator extraction can mask
    them all, not only the winner.
    """
    numeric = list(_TIMEFRAME_RE.finditer(text))
    spans = [m.span() for m in numeric]
    if numeric:
        last = numeric[-1]
        return TimeframeFragment(normalize_timeframe(last.group(1), last.group(2)), spans)

    keywords = list(_TIMEFRAME_KEYWORD_RE.finditer(text))
    if keywords:
        return TimeframeFragment(_TIMEFRAME_KEYWORDS[keywords[-1].group(1)], [])
    return None


# ─── Chart type ───────────────────────────────────────────────────────────────

_CANDLE_RE = re.compile(r"(?<!\bon )\bcandle(?:stick)?s?\b")
_LINE_AREA_RE = re.compile(
    r"\b(line|area)\s+(?:chart|graph|view|mode|type)\b"
    r"|\b(?:to|as|use|show)\s+(?:an?\s+)?(line|area)\b"
    r"|\bchart\s+type\s+(?:to\s+)?(line|area)\b"
)


def extract_chart_type(text: str, catalog: ChartCatalog) -> str | None:
    matches: list[tuple[int, str]] = [(m.start(), "candle") for m in _CANDLE_RE.finditer(text)]
    for m in _LINE_AREA_RE.finditer(text):
        matches.append((m.start(), next(g for g in m.groups() if g)))
    if not matches:
        return None
    value = max(matches)[1]
    return value if catalog.is_valid_chart_type(value) else None


# ─── Navigation ───────────────────────────────────────────────────────────────

_NAVIGATION_PATTERNS = [
    (re.compile(r"\b(?:pan|move|scroll)\s+left\b|\bback(?:ward)?\b"), "left"),
    (re.compile(r"\b(?:pan|move|scroll)\s+right\b|\bforward\b"), "right"),
    (re.compile(r"\bzoom\s*in\b"), "zoom-in"),
    (re.compile(r"\bzoom\s*out\b"), "zoom-out"),
]
_BARS_RE = re.compile(r"\s*(\d{1,4})\s*(?:bars?|candles?)\b")


@dataclass
class NavigationFragment:
    direction: str
    bars: int | None = None
    spans: list[Span] = field(default_factory=list)


def extract_navigation(text: str) -> NavigationFragment | None:
    """Earliest navigation phrase wins. An adjacent `<n> bars` sets the distance."""
    best: tuple[int, int, str] | None = None
    for pattern, direction in _NAVIGATION_PATTERNS:
        match = pattern.search(text)
        if match and (best is None or match.start() < best[0]):
            best = (match.start(), match.end(), direction)
    if best is None:
        return None

    start, end, direction = best
    fragment = NavigationFragment(direction)
    bars = _BARS_RE.match(text, end)
    if bars and direction in ("left", "right"):
        fragment.bars = int(bars.group(1))
        fragment.spans.append(bars.span())
    return fragment


# ─── Presets / favorites / drawings / history ────────────────────────────────

_NAME = r"([a-z0-9_\-]+(?:\s+[a-z0-9_\-]+)*?)"
_NAME_END = r"(?=\s+(?:and|then)\b|\s*[,.;]|\s*$)"
_SAVE_PRESET_RE = re.compile(rf"\bsave\s+(?:the\s+|my\s+)?(?:layout|preset)\s+as\s+{_NAME}{_NAME_END}")
_LOAD_PRESET_RE = re.compile(rf"\b(?:load|apply)\s+(?:the\s+|my\s+)?(?:layout|preset)\s+{_NAME}{_NAME_END}")

_FAVORITES = r"\s+to\s+(?:my\s+)?favou?rites\b"
_FAV_TIMEFRAME_RE = re.compile(rf"\badd\s+(\d{{1,3}})\s*({_UNIT}){_FAVORITES}")
_FAV_TYPE_RE = re.compile(rf"\badd\s+(candles?|candlesticks?|line|area){_FAVORITES}")

_TRENDLINE_RE = re.compile(r"\b(?:add|draw)\s+(?:an?\s+)?trend\s*(?:line)?s?\b")
_LABEL_RE = re.compile(r"\b(?:add\s+(?:an?\s+)?)?label\s+at\s+(\d+(?:\.\d+)?)\b")

_UNDO_RE = re.compile(r"\bundo\b")
_REDO_RE = re.compile(r"\bredo\b")


@dataclass
class Fragment:
    """A tool call candidate plus the text spans it consumed."""

    tool: str
    args: dict[str, Any]
    spans: list[Span] = field(default_factory=list)
    start: int = 0


def extract_presets(text: str) -> list[Fragment]:
    fragments = [
        Fragment("presets.save", {"name": m.group(1).strip()}, [m.span()], m.start())
        for m in _SAVE_PRESET_RE.finditer(text)
    ]
    fragments += [
        Fragment("presets.load", {"name": m.group(1).strip()}, [m.span()], m.start())
        for m in _LOAD_PRESET_RE.finditer(text)
    ]
    return sorted(fragments, key=lambda f: f.start)


def extract_favorites(text: str) -> list[Fragment]:
    fragments = [
        Fragment(
            "favorites.add_timeframe",
            {"timeframe": normalize_timeframe(m.group(1), m.group(2))},
            [m.span()],
            m.start(),
        )
        for m in _FAV_TIMEFRAME_RE.finditer(text)
    ]
    for m in _FAV_TYPE_RE.finditer(text):
        value = "candle" if m.group(1).startswith("candle") else m.group(1)
        fragments.append(Fragment("favorites.add_type", {"type": value}, [m.span()], m.start()))
    return sorted(fragments, key=lambda f: f.start)


def extract_drawings(text: str) -> list[Fragment]:
    fragments = [
        Fragment("draw.add", {"tool": "trendline", "points": [], "style": {}}, [m.span()], m.start())
        for m in _TRENDLINE_RE.finditer(text)
    ]
    for m in _LABEL_RE.finditer(text):
        fragments.append(
            Fragment(
                "draw.add",
                {"tool": "label", "points": [{"value": float(m.group(1))}], "text": "Label"},
                [m.span()],
                m.start(),
            )
        )
    return sorted(fragments, key=lambda f: f.start)


def extract_history(text: str) -> list[Fragment]:
    fragments = [Fragment("history.undo", {"steps": 1}, [m.span()], m.start()) for m in _UNDO_RE.finditer(text)]
    fragments += [Fragment("history.redo", {"steps": 1}, [m.span()], m.start()) for m in _REDO_RE.finditer(text)]
    return sorted(fragments, key=lambda f: f.start)


# ─── Indicators ───────────────────────────────────────────────────────────────

AFTER_WINDOW = 32
BEFORE_WINDOW = 16
MAX_PARAM = 9999

_NUMBER_RE = re.compile(r"(?<![\w.])\d+(?:\.\d+)?(?!\w|\.\d)")
_VERB_RE = re.compile(r"\b(add|show|plot|put|apply|insert|remove|delete|clear|hide|drop)\b")
_REMOVAL_VERBS = {"remove", "delete", "clear", "hide", "drop"}
_OVERLAY_RE = re.compile(r"\boverlay\b|\bon\s+(?:the\s+)?(?:price|chart|candles?)\b")
_SEPARATE_RE = re.compile(r"\b(?:separate|own|new)\s+(?:panel|pane)\b|\bbelow\b")


@dataclass
class IndicatorIntent:
    name: str
    params: list[int] = field(default_factory=list)
    overlay: bool | None = None
    remove: bool = False
    mentions: int = 1


def _alias_pattern(alias: str) -> re.Pattern[str]:
    body = r"\s+".join(re.escape(part) for part in alias.split())
    return re.compile(rf"(?<![a-z0-9]){body}(?![a-z0-9])")


def find_indicator_mentions(text: str, catalog: ChartCatalog) -> list[tuple[int, int, str]]:
    """All whole-word alias occurrences as (start, end, canonical).

    Longer aliases claim overlapping spans first, so `bollinger bands`
    is one mention and not `bollinger` + `bands`.
    """
    candidates: list[tuple[int, int, str]] = []
    for alias, canonical in catalog.indicator_aliases().items():
        for match in _alias_pattern(alias).finditer(text):
            candidates.append((match.start(), match.end(), canonical))

    candidates.sort(key=lambda c: (-(c[1] - c[0]), c[0]))
    accepted: list[tuple[int, int, str]] = []
    for start, end, canonical in candidates:
        if any(start < a_end and a_start < end for a_start, a_end, _ in accepted):
            continue
        accepted.append((start, end, canonical))
    return sorted(accepted)


def _numbers(segment: str) -> tuple[list[int], int]:
    """Valid integer params in `segment` and the end offset of the last one."""
    values: list[int] = []
    last_end = 0
    for match in _NUMBER_RE.finditer(segment):
        value = int(float(match.group(0)))
        last_end = match.end()
        if 0 < value <= MAX_PARAM and value not in values:
            values.append(value)
    return values, last_end


def _placement(segment: str) -> bool | None:
    overlay = _OVERLAY_RE.search(segment)
    separate = _SEPARATE_RE.search(segment)
    if overlay and separate:
        return overlay.start() < separate.start()
    if overlay:
        return True
    if separate:
        return False
    return None


def extract_indicators(text: str, catalog: ChartCatalog) -> list[IndicatorIntent]:
    """One intent per mention, in text order (unmerged)."""
    mentions = find_indicator_mentions(text, catalog)
    intents: list[IndicatorIntent] = []
    consumed_until = 0
    previous_end = 0

    for index, (start, end, canonical) in enumerate(mentions):
        next_start = mentions[index + 1][0] if index + 1 < len(mentions) else len(text)

        after = text[end:min(end + AFTER_WINDOW, next_start)]
        params, last = _numbers(after)
        if params:
            consumed_until = end + last
        else:
            window_start = max(consumed_until, previous_end, start - BEFORE_WINDOW)
            params, _ = _numbers(text[window_start:start])

        overlay = _placement(text[end:next_start])
        if overlay is None:
            overlay = _placement(text[previous_end:start])

        verbs = list(_VERB_RE.finditer(text, 0, start))
        remove = bool(verbs) and verbs[-1].group(1) in _REMOVAL_VERBS

        intents.append(IndicatorIntent(canonical, params, overlay, remove))
        previous_end = max(end, consumed_until)
    return intents


def merge_indicator_intents(intents: list[IndicatorIntent]) -> list[IndicatorIntent]:
    """Merge intents sharing a canonical name, in first-mention order.

    Parameter sets are unioned (sorted ascending once two or more intents
    merge), removal flags are OR'ed and the last explicit placement wins.
    """
    merged: dict[str, IndicatorIntent] = {}
    for intent in intents:
        existing = merged.get(intent.name)
        if existing is None:
            merged[intent.name] = IndicatorIntent(intent.name, list(intent.params), intent.overlay, intent.remove)
            continue
        existing.mentions += 1
        existing.params = sorted(set(existing.params) | set(intent.params))
        existing.remove = existing.remove or intent.remove
        if intent.overlay is not None:
            existing.overlay = intent.overlay
    return list(merged.values())


# ─── Style ────────────────────────────────────────────────────────────────────

_LINE_STYLE_RE = re.compile(r"\b(solid|dashed|dotted)\b")
_THICKNESS_RE = re.compile(r"\b(thin|medium|thick)\b")


def extract_style(text: str, catalog: ChartCatalog, thickness: dict[str, int]) -> dict[str, Any]:
    """First line style, first weight and first palette color word."""
    style: dict[str, Any] = {}

    color_hits: list[tuple[int, int, str]] = []
    for name in catalog.color_names:
        match = _alias_pattern(name).search(text)
        if match:
            color_hits.append((match.start(), -len(name), name))
    if color_hits:
        style["color"] = min(color_hits)[2]

    line_style = _LINE_STYLE_RE.search(text)
    if line_style:
        style["style"] = line_style.group(1)

    weight = _THICKNESS_RE.search(text)
    if weight:
        style["size"] = thickness[weight.group(1)]
    return style


# ─── Opt-in keywords ──────────────────────────────────────────────────────────

_SCREENSHOT_RE = re.compile(r"\b(?:screenshot|snapshot|capture)\b")
_CHART_ANALYSIS_RE = re.compile(r"\b(?:analy[sz]e[sd]?|analy[sz]ing|analysis)\b")
_ENTRY_EXIT_RE = re.compile(r"\b(?:entry|entries|exit|exits|signals?)\b")


def wants_screenshot(text: str) -> bool:
    return bool(_SCREENSHOT_RE.search(text))


def wants_chart_analysis(text: str) -> bool:
    return bool(_CHART_ANALYSIS_RE.search(text))


def wants_entry_exit(text: str) -> bool:
    return bool(_ENTRY_EXIT_RE.search(text))


def mask(text: str, spans: list[Span]) -> str:
    """Blank out spans while keeping offsets stable."""
    chars = list(text)
    for start, end in spans:
        chars[start:end] = " " * (end - start)
    return "".join(chars)
