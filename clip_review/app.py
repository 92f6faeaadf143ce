# clip_review/app.py
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from PyQt5.QtWidgets import QApplication, QFileDialog, QMessageBox

from .main_window import MainWindow
from .persistence import load_root_config

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Console logging for the whole package. Calling it again replaces the handler."""
    root = logging.getLogger("clip_review")
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root.handlers = []

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    root.addHandler(handler)
    root.propagate = False


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clip-review", description="Review and prune captured clips")
    parser.add_argument("--root", default=None, help="Data root holding one directory per session")
    parser.add_argument("--session", default=None, help="Session id to open on start")
    parser.add_argument("--log-level", default=None,
                        help="Logging level (default: from config.json, else INFO)")
    return parser


def choose_root_dir(parent=None) -> Optional[str]:
    d = QFileDialog.getExistingDirectory(parent, "Select Data Root")
    return d or None


def run_app(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    cfg = load_root_config(args.root) if args.root else None
    configure_logging(args.log_level or (cfg.log_level if cfg else "INFO"))

    app = QApplication(sys.argv[:1])

    win = MainWindow(root_dir=args.root)
    win.show()

    # If root not set, prompt once
    if not win.root_dir:
        QMessageBox.information(
            win,
            "Select Data Root",
            "Please choose the data root directory that holds your capture sessions.",
        )
        d = choose_root_dir(win)
        if d:
            win.set_root_dir(d)

    session_id = args.session or (win.cfg.last_session if win.cfg else None)
    if win.root_dir and session_id:
        logger.info("opening session %s", session_id)
        win.open_session(session_id)

    return app.exec_()
