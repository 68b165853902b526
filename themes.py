"""
Theme Definitions for Crossfade Deck.
Each palette colors the player window; pick one with --theme.
"""

DEFAULT_THEME = "Neon Night"

THEMES = {
    # =========================================================================
    # DARK
    # =========================================================================
    "Neon Night": {
        "bg_primary": "#0e0f1a", "bg_secondary": "#171a2b",
        "fg_primary": "#3d5afe", "accent": "#ff4fa3",
        "text_main": "#f2f3ff", "text_dim": "#7a7f9e",
        "btn_text": "#ffffff", "btn_active": "#ff4fa3",
    },
    "Midnight Drive": {
        "bg_primary": "#111111", "bg_secondary": "#1a1a1a",
        "fg_primary": "#4fa3e0", "accent": "#d68f29",
        "text_main": "#ffffff", "text_dim": "#888888",
        "btn_text": "#ffffff", "btn_active": "#2cc985",
    },
    "City Lights": {
        "bg_primary": "#14110b", "bg_secondary": "#221c12",
        "fg_primary": "#e0a84f", "accent": "#ffd166",
        "text_main": "#fff4e0", "text_dim": "#8c7a5c",
        "btn_text": "#14110b", "btn_active": "#ffd166",
    },

    # =========================================================================
    # LIGHT
    # =========================================================================
    "Daylight": {
        "bg_primary": "#ffffff", "bg_secondary": "#f2f2f2",
        "fg_primary": "#333333", "accent": "#0066cc",
        "text_main": "#000000", "text_dim": "#666666",
        "btn_text": "#ffffff", "btn_active": "#0066cc",
    },
}
