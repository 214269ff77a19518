"""Theme definitions for the Smart Bookmark TUI.

Each preset is a Textual Theme controlling the design tokens ($primary,
$surface, $panel, ...) used by styles.tcss.  The active preset comes from
``display.theme`` in the config file.
"""

from textual.theme import Theme

TEXTUAL_THEMES: dict[str, Theme] = {
    "dark": Theme(
        name="bookmark-dark",
        primary="#6366f1",
        secondary="#5599dd",
        accent="#a855f7",
        background="#0b0b12",
        surface="#15151f",
        panel="#2a2a3a",
        success="#22c55e",
        warning="#eab308",
        error="#dc2626",
        dark=True,
    ),
    "light": Theme(
        name="bookmark-light",
        primary="#4f46e5",
        secondary="#2563eb",
        accent="#9333ea",
        background="#fafafa",
        surface="#ffffff",
        panel="#e5e7eb",
        success="#16a34a",
        warning="#ca8a04",
        error="#dc2626",
        dark=False,
    ),
    "solarized": Theme(
        name="bookmark-solarized",
        primary="#b58900",
        secondary="#268bd2",
        accent="#6c71c4",
        background="#002b36",
        surface="#073642",
        panel="#586e75",
        success="#859900",
        warning="#cb4b16",
        error="#dc322f",
        dark=True,
    ),
}

DEFAULT_THEME = TEXTUAL_THEMES["dark"]


def resolve_theme(name: str) -> Theme:
    """Return the preset called *name*, or the dark default if unknown."""
    return TEXTUAL_THEMES.get(name, DEFAULT_THEME)
