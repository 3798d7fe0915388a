"""
DualSolver — Window colours

Two fixed palettes plus module-level colour names.  Widgets read the names
(``themes.BG``, ``themes.EDITOR_FG`` ...) when they are built, so switching
themes means calling ``apply_theme()`` and rebuilding the widgets.
"""

# ── Palettes ───────────────────────────────────────────────────────────────

DARK_PALETTE = dict(
    BG           = "#14171c",
    BG_DARKER    = "#0d0f13",
    HEADER_BG    = "#1b1f26",
    ACCENT       = "#2b8a8a",
    ACCENT_HOVER = "#217070",
    TEXT         = "#c9ced6",
    TEXT_BRIGHT  = "#eef1f5",
    PANEL_BG     = "#1a1d23",
    BORDER       = "#2e333c",
    SUCCESS      = "#5cb85c",
    ERROR        = "#e5534b",
    LOCKED       = "#e0b040",
    EDITOR_BG    = "#101318",
    EDITOR_FG    = "#e3e6ea",
    COMMENT      = "#6a9955",
    KEYWORD      = "#569cd6",
)

LIGHT_PALETTE = dict(
    BG           = "#eef1f4",
    BG_DARKER    = "#dfe4ea",
    HEADER_BG    = "#fbfcfd",
    ACCENT       = "#1f6f6f",
    ACCENT_HOVER = "#175656",
    TEXT         = "#3d434c",
    TEXT_BRIGHT  = "#0f1216",
    PANEL_BG     = "#fbfcfd",
    BORDER       = "#ccd3dc",
    SUCCESS      = "#2f7d32",
    ERROR        = "#b3261e",
    LOCKED       = "#a15c00",
    EDITOR_BG    = "#ffffff",
    EDITOR_FG    = "#15181c",
    COMMENT      = "#3b7a3b",
    KEYWORD      = "#1a4fb0",
)

# ── Active colours (dark until apply_theme() says otherwise) ───────────────

BG           = DARK_PALETTE["BG"]
BG_DARKER    = DARK_PALETTE["BG_DARKER"]
HEADER_BG    = DARK_PALETTE["HEADER_BG"]
ACCENT       = DARK_PALETTE["ACCENT"]
ACCENT_HOVER = DARK_PALETTE["ACCENT_HOVER"]
TEXT         = DARK_PALETTE["TEXT"]
TEXT_BRIGHT  = DARK_PALETTE["TEXT_BRIGHT"]
PANEL_BG     = DARK_PALETTE["PANEL_BG"]
BORDER       = DARK_PALETTE["BORDER"]
SUCCESS      = DARK_PALETTE["SUCCESS"]
ERROR        = DARK_PALETTE["ERROR"]
LOCKED       = DARK_PALETTE["LOCKED"]
EDITOR_BG    = DARK_PALETTE["EDITOR_BG"]
EDITOR_FG    = DARK_PALETTE["EDITOR_FG"]
COMMENT      = DARK_PALETTE["COMMENT"]
KEYWORD      = DARK_PALETTE["KEYWORD"]


def palette(theme: str) -> dict:
    return LIGHT_PALETTE if theme == "light" else DARK_PALETTE


def apply_theme(theme: str) -> None:
    """Point the module colour names at the ``"dark"`` or ``"light"`` palette."""
    globals().update(palette(theme))
