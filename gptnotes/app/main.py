from __future__ import annotations

import argparse
import logging
import os
import sys
import traceback

from PySide6.QtCore import QtMsgType, qInstallMessageHandler
from PySide6.QtWidgets import QApplication

from gptnotes.app.plugin import ChatPlugin
from gptnotes.app.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def _debug_enabled(var_name: str) -> bool:
    """Check if a debug flag is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # httpx logs every request at INFO; keep it for debug runs only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def _qt_message_handler(mode: QtMsgType, context, message: str) -> None:
    """Route Qt diagnostics through logging."""
    qt_logger = logging.getLogger("qt")
    if mode == QtMsgType.QtDebugMsg:
        qt_logger.debug(message)
    elif mode == QtMsgType.QtWarningMsg:
        qt_logger.warning(message)
    elif mode == QtMsgType.QtCriticalMsg:
        qt_logger.error(message)
    elif mode == QtMsgType.QtFatalMsg:
        qt_logger.critical(message)
        sys.exit(1)
    else:
        qt_logger.info(message)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GPT Notes desktop entry point.")
    parser.add_argument("--vault", help="Path to a vault to open at startup.")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=_debug_enabled("GPTNOTES_DEBUG"),
        help="Log request payloads and other diagnostics (or set GPTNOTES_DEBUG=1).",
    )
    return parser.parse_args(argv)


def main() -> None:
    args = _parse_args(sys.argv[1:])
    _configure_logging(args.debug)
    qInstallMessageHandler(_qt_message_handler)
    qt_app = QApplication(sys.argv)
    window = MainWindow()
    window.load_plugin(ChatPlugin(window))
    window.resize(1200, 800)
    try:
        if window.startup(vault_hint=args.vault):
            window.show()
            logger.info("Main window shown; entering Qt event loop.")
            sys.exit(qt_app.exec())
        logger.info("Startup cancelled by user; quitting.")
        qt_app.quit()
    except Exception as exc:
        logger.error("Unhandled exception: %s", exc)
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
