"""
main.py — Entry point for Bubble Overlay Editor.
"""

import logging
import os
import sys

from config import configure_logging, load_config

log = logging.getLogger(__name__)


def _resource_path(relative: str) -> str:
    """Return absolute path to a bundled resource (PyInstaller-aware)."""
    if hasattr(sys, "_MEIPASS"):
        return os.path.join(sys._MEIPASS, relative)
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), relative)


def _load_fonts(fonts_dir: str) -> int:
    """Register bundled .ttf/.otf files; returns how many Qt accepted."""
    from PyQt6.QtGui import QFontDatabase

    loaded = 0
    if not os.path.isdir(fonts_dir):
        return loaded
    for fname in sorted(os.listdir(fonts_dir)):
        if fname.lower().endswith((".ttf", ".otf")):
            if QFontDatabase.addApplicationFont(os.path.join(fonts_dir, fname)) >= 0:
                loaded += 1
            else:
                log.warning("Font %s could not be loaded", fname)
    return loaded


def main():
    config = load_config()
    configure_logging(config.log_level)

    from PyQt6.QtWidgets import QApplication
    from PyQt6.QtGui import QIcon

    app = QApplication(sys.argv)
    app.setApplicationName("Bubble Overlay Editor")

    # Comic fonts are optional; missing families fall back to Qt's default
    log.debug("%d bundled fonts loaded", _load_fonts(_resource_path("fonts")))

    icon_path = _resource_path(os.path.join("icons", "icon.png"))
    if os.path.exists(icon_path):
        app.setWindowIcon(QIcon(icon_path))

    from main_window import MainWindow
    window = MainWindow(config)
    window.show()

    args = app.arguments()[1:]
    if args:
        path = args[0]
        if path.lower().endswith(".json"):
            window.open_project(path)
        else:
            window.open_image(path)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
