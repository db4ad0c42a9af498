from PySide6.QtGui import QColor, QFont, QPalette
from PySide6.QtWidgets import QApplication, QWidget

from image_cropper.crop.options import Theme

# -----------------------------------------------------------------------------
# Neutral palette around the configurable theme colours
# -----------------------------------------------------------------------------


class EditorColors:
    BORDER = "#D0D7DA"
    TEXT = "#1F1F1F"
    TEXT_SEC = "#5D5D5D"
    SURFACE_ALT = "#F3F5F6"
    ACCENT_TEXT = "#FFFFFF"


# -----------------------------------------------------------------------------
# Crop editor QSS template
# -----------------------------------------------------------------------------

EDITOR_QSS = """
    * {
        font-family: "Segoe UI", "Malgun Gothic", sans-serif;
        font-size: {{font_size}}pt;
    }

    QDialog#cropDialog {
        background-color: {{background}};
        color: {{text}};
    }

    QLabel#cropLoading {
        color: {{text_sec}};
        font-size: {{title_font_size}}pt;
    }

    QLabel#cropTitle {
        color: {{primary}};
        font-weight: 600;
        font-size: {{title_font_size}}pt;
    }

    /* -------------------------------------------------------------------------
       Buttons
       ------------------------------------------------------------------------- */
    QPushButton {
        background-color: {{background}};
        color: {{primary}};
        border: 1px solid {{primary}};
        border-radius: 4px;
        padding: 6px 14px;
        min-height: 20px;
    }
    QPushButton:hover {
        background-color: {{surface_alt}};
    }
    QPushButton:checked {
        background-color: {{primary}};
        color: {{accent_text}};
    }
    QPushButton:disabled {
        color: {{text_sec}};
        border-color: {{border}};
    }
    QPushButton#cropSave {
        background-color: {{primary}};
        color: {{accent_text}};
    }
    QPushButton#cropSave:disabled {
        background-color: {{border}};
    }

    /* -------------------------------------------------------------------------
       Zoom slider
       ------------------------------------------------------------------------- */
    QSlider::groove:horizontal {
        height: 4px;
        background: {{border}};
        border-radius: 2px;
    }
    QSlider::handle:horizontal {
        background: {{primary}};
        width: 14px;
        margin: -6px 0;
        border-radius: 7px;
    }
    QSlider::sub-page:horizontal {
        background: {{primary}};
        border-radius: 2px;
    }
"""


def qss_color(value: str) -> str:
    """Render a "#RRGGBB" or "#AARRGGBB" colour as a QSS rgba() literal."""
    c = QColor(value)
    return f"rgba({c.red()}, {c.green()}, {c.blue()}, {c.alpha()})"


def editor_palette(theme: Theme) -> dict[str, str]:
    return {
        "primary": qss_color(theme.primary_color),
        "background": qss_color(theme.background_color),
        "overlay": qss_color(theme.overlay_color),
        "border": EditorColors.BORDER,
        "text": EditorColors.TEXT,
        "text_sec": EditorColors.TEXT_SEC,
        "surface_alt": EditorColors.SURFACE_ALT,
        "accent_text": EditorColors.ACCENT_TEXT,
    }


def editor_stylesheet(theme: Theme, font_size: int = 10) -> str:
    qss = EDITOR_QSS.replace("{{font_size}}", str(font_size))
    qss = qss.replace("{{title_font_size}}", str(font_size + 2))
    for key, val in editor_palette(theme).items():
        qss = qss.replace(f"{{{{{key}}}}}", val)
    return qss


def apply_editor_style(widget: QWidget, theme: Theme, font_size: int = 10) -> None:
    """Style the crop editor itself; the rest of the application is left alone."""
    palette = widget.palette()
    palette.setColor(QPalette.Window, QColor(theme.background_color))
    palette.setColor(QPalette.Highlight, QColor(theme.primary_color))
    palette.setColor(QPalette.HighlightedText, QColor(EditorColors.ACCENT_TEXT))
    widget.setPalette(palette)
    widget.setStyleSheet(editor_stylesheet(theme, font_size))


def apply_app_font(app: QApplication, font_size: int = 10) -> None:
    # Segoe UI on Windows; Qt falls back to the platform sans elsewhere
    app.setStyle("Fusion")
    font = QFont("Segoe UI")
    font.setStyleHint(QFont.SansSerif)
    font.setPointSize(font_size)
    app.setFont(font)
