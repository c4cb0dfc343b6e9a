"""
Stylesheet for the Fragment Rescue window.
"""

BACKGROUND = "#202124"
SURFACE = "#2b2d31"
BORDER = "#3c4043"
TEXT = "#e8eaed"
MUTED = "#9aa0a6"
ACCENT = "#8ab4f8"
GOOD = "#81c995"
BAD = "#f28b82"

STYLESHEET = f"""
QMainWindow, QWidget {{
    background-color: {BACKGROUND};
    color: {TEXT};
}}

QTabBar::tab {{
    background-color: {SURFACE};
    padding: 8px 18px;
    border: 1px solid {BORDER};
    border-bottom: none;
}}

QTabBar::tab:selected {{
    color: {ACCENT};
}}

QGroupBox {{
    border: 1px solid {BORDER};
    border-radius: 4px;
    margin-top: 14px;
    font-weight: bold;
}}

QGroupBox::title {{
    subcontrol-origin: margin;
    left: 8px;
    color: {ACCENT};
}}

QLineEdit, QPlainTextEdit, QSpinBox, QTableWidget {{
    background-color: {SURFACE};
    border: 1px solid {BORDER};
    border-radius: 3px;
    padding: 4px;
}}

QPlainTextEdit {{
    font-family: monospace;
}}

QPushButton {{
    background-color: {SURFACE};
    border: 1px solid {BORDER};
    border-radius: 4px;
    padding: 6px 14px;
}}

QPushButton:disabled {{
    color: {MUTED};
}}

QPushButton#startButton {{
    background-color: {GOOD};
    color: {BACKGROUND};
}}

QPushButton#stopButton {{
    background-color: {BAD};
    color: {BACKGROUND};
}}

QLabel#statusLabel {{
    color: {GOOD};
}}

QLabel#mutedLabel {{
    color: {MUTED};
}}

QProgressBar {{
    border: 1px solid {BORDER};
    border-radius: 3px;
    text-align: center;
}}

QProgressBar::chunk {{
    background-color: {ACCENT};
}}

QHeaderView::section {{
    background-color: {BORDER};
    color: {ACCENT};
    padding: 6px;
    border: none;
}}
"""
