"""
Chart Domain Configuration - Static chart vocabulary.

Defines the built-in indicators, timeframes, chart types, line styles,
thickness options and the color palette exposed to the command parser and
the chart agents.
"""

# Built-in indicators: canonical name → default calc params + overlay compatibility
BUILTIN_INDICATORS = [
    {"name": "MA", "title": "Moving Average", "default_params": [5, 10, 30, 60], "overlay": True, "default_color": "#3B82F6"},
    {"name": "EMA", "title": "Exponential Moving Average", "default_params": [6, 12, 20], "overlay": True, "default_color": "#22D3EE"},
    {"name": "SMA", "title": "Simple Moving Average", "default_params": [12, 2], "overlay": True, "default_color": "#EAB308"},
    {"name": "BBI", "title": "Bull and Bear Index", "default_params": [3, 6, 12, 24], "overlay": True, "default_color": "#A78BFA"},
    {"name": "BOLL", "title": "Bollinger Bands", "default_params": [20, 2], "overlay": True, "default_color": "#F59E0B"},
    {"name": "VWAP", "title": "Volume Weighted Average Price", "default_params": [], "overlay": True, "default_color": "#F472B6"},
    {"name": "SAR", "title": "Parabolic SAR", "default_params": [2, 2, 20], "overlay": True, "default_color": "#FB7185"},
    {"name": "VOL", "title": "Volume", "default_params": [5, 10, 20], "overlay": False, "default_color": "#6EE7B7"},
    {"name": "MACD", "title": "MACD", "default_params": [12, 26, 9], "overlay": False, "default_color": "#60A5FA"},
    {"name": "KDJ", "title": "Stochastic KDJ", "default_params": [9, 3, 3], "overlay": False, "default_color": "#34D399"},
    {"name": "RSI", "title": "Relative Strength Index", "default_params": [6, 12, 24], "overlay": False, "default_color": "#F472B6"},
    {"name": "OBV", "title": "On Balance Volume", "default_params": [30], "overlay": False, "default_color": "#93C5FD"},
    {"name": "DMA", "title": "Different of Moving Average", "default_params": [10, 50, 10], "overlay": False, "default_color": "#67E8F9"},
    {"name": "TRIX", "title": "Triple Exponential Average", "default_params": [12, 20], "overlay": False, "default_color": "#FDE047"},
    {"name": "BRAR", "title": "Sentiment Indicator", "default_params": [26], "overlay": False, "default_color": "#FCA5A5"},
    {"name": "VR", "title": "Volume Ratio", "default_params": [24, 30], "overlay": False, "default_color": "#A7F3D0"},
    {"name": "WR", "title": "Williams %R", "default_params": [6, 10, 14], "overlay": False, "default_color": "#F9A8D4"},
    {"name": "MTM", "title": "Momentum", "default_params": [6, 10], "overlay": False, "default_color": "#C4B5FD"},
    {"name": "EMV", "title": "Ease of Movement", "default_params": [14, 9], "overlay": False, "default_color": "#FDBA74"},
    {"name": "DMI", "title": "Directional Movement Index", "default_params": [14, 6], "overlay": False, "default_color": "#86EFAC"},
    {"name": "CR", "title": "Energy Index", "default_params": [26, 10, 20, 40, 60], "overlay": False, "default_color": "#FDA4AF"},
    {"name": "PSY", "title": "Psychological Line", "default_params": [12, 6], "overlay": False, "default_color": "#FDE68A"},
    {"name": "AO", "title": "Awesome Oscillator", "default_params": [5, 34], "overlay": False, "default_color": "#A5B4FC"},
    {"name": "ROC", "title": "Rate of Change", "default_params": [12, 6], "overlay": False, "default_color": "#FCA5A5"},
    {"name": "PVT", "title": "Price and Volume Trend", "default_params": [], "overlay": False, "default_color": "#93C5FD"},
    {"name": "AVP", "title": "Average Price", "default_params": [], "overlay": False, "default_color": "#FDE68A"},
]

# Synonyms the parser understands on top of lowercase canonical names
INDICATOR_SYNONYMS = {
    "bollinger": "BOLL",
    "bollinger bands": "BOLL",
    "bollinger band": "BOLL",
    "bb": "BOLL",
    "stochastic": "KDJ",
    "stoch": "KDJ",
    "kdj": "KDJ",
    "volume": "VOL",
    "moving average": "MA",
    "exponential moving average": "EMA",
    "simple moving average": "SMA",
    "parabolic sar": "SAR",
    "williams": "WR",
    "momentum": "MTM",
}

TIMEFRAMES = [
    {"value": "1m", "label": "1 Minute"},
    {"value": "5m", "label": "5 Minutes"},
    {"value": "15m", "label": "15 Minutes"},
    {"value": "30m", "label": "30 Minutes"},
    {"value": "1h", "label": "1 Hour"},
    {"value": "4h", "label": "4 Hours"},
    {"value": "1D", "label": "1 Day"},
    {"value": "1W", "label": "1 Week"},
    {"value": "1M", "label": "1 Month"},
]

CHART_TYPES = [
    {"value": "candle", "label": "Candlestick"},
    {"value": "line", "label": "Line"},
    {"value": "area", "label": "Area"},
]

LINE_STYLES = ["solid", "dashed", "dotted"]

# Stroke weight words → line size in px
LINE_THICKNESS = {
    "thin": 1,
    "medium": 2,
    "thick": 3,
}

COLOR_PALETTE = [
    {"value": "#111827", "name": "Dark Gray"},
    {"value": "#4B5563", "name": "Gray"},
    {"value": "#1E3A8A", "name": "Dark Blue"},
    {"value": "#3B82F6", "name": "Blue"},
    {"value": "#60A5FA", "name": "Light Blue"},
    {"value": "#A78BFA", "name": "Purple"},
    {"value": "#F472B6", "name": "Pink"},
    {"value": "#F87171", "name": "Light Red"},
    {"value": "#EF4444", "name": "Red"},
    {"value": "#F59E0B", "name": "Orange"},
    {"value": "#FDE047", "name": "Yellow"},
    {"value": "#34D399", "name": "Light Green"},
    {"value": "#10B981", "name": "Green"},
    {"value": "#059669", "name": "Dark Green"},
    {"value": "#22D3EE", "name": "Cyan"},
    {"value": "#FFFFFF", "name": "White"},
    {"value": "#000000", "name": "Black"},
]

DISPLAY_OPTIONS = [
    "showVolume",
    "showGrid",
    "showPriceAxisLine",
    "showTimeAxisLine",
    "showPriceAxisText",
    "showTimeAxisText",
    "showLastPriceLabel",
    "showSessions",
]

NAVIGATION_DIRECTIONS = ["left", "right", "zoom-in", "zoom-out"]

TRADING_STRATEGIES = ["day_trade", "swing_trade", "trend_follow", "mean_reversion", "breakout"]

RISK_LEVELS = {
    "conservative": 0.01,
    "moderate": 0.02,
    "aggressive": 0.04,
}

STRATEGY_COMPLEXITY = {
    "simple": {"description": "Single-indicator rules", "features": ["entry", "exit"]},
    "partial": {"description": "Multi-indicator confirmation", "features": ["entry", "exit", "filters"]},
    "advanced": {
        "description": "Full rule set with risk management",
        "features": ["entry", "exit", "filters", "position_sizing", "trailing_stop"],
    },
}

# Indicator params preferred by each trading profile (used when a step gives none)
INDICATOR_PROFILES = {
    "day_trade": {"EMA": [9, 21, 50], "VWAP": [], "VOL": [], "RSI": [14], "MACD": [12, 26, 9], "BOLL": [20, 2]},
    "swing_trade": {"EMA": [20, 50, 200], "SMA": [50, 200], "VOL": [], "RSI": [14], "MACD": [12, 26, 9], "BOLL": [20, 2]},
}

# Layout presets: one price-pane indicator and two sub-pane indicators
LAYOUT_PRESETS = {
    "day_ema_rsi_macd": {
        "profile": "day_trade",
        "timeframes": ["1m", "5m"],
        "indicators": [("EMA", [9, 21, 50]), ("RSI", [14]), ("MACD", [12, 26, 9])],
    },
    "day_boll_rsi_macd": {
        "profile": "day_trade",
        "timeframes": ["1m", "5m"],
        "indicators": [("BOLL", [20, 2]), ("RSI", [14]), ("MACD", [12, 26, 9])],
    },
    "day_ema_kdj_vol": {
        "profile": "day_trade",
        "timeframes": ["1m", "5m"],
        "indicators": [("EMA", [9, 21, 50]), ("KDJ", [9, 3, 3]), ("VOL", [5, 10, 20])],
    },
    "swing_ema_rsi_macd": {
        "profile": "swing_trade",
        "timeframes": ["1D", "4h"],
        "indicators": [("EMA", [20, 50, 200]), ("RSI", [14]), ("MACD", [12, 26, 9])],
    },
    "swing_boll_rsi_obv": {
        "profile": "swing_trade",
        "timeframes": ["1D", "4h"],
        "indicators": [("BOLL", [20, 2]), ("RSI", [14]), ("OBV", [30])],
    },
    "swing_sma_rsi_macd": {
        "profile": "swing_trade",
        "timeframes": ["1D", "1W"],
        "indicators": [("SMA", [50, 200]), ("RSI", [14]), ("MACD", [12, 26, 9])],
    },
}
