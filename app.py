"""Application entry point for the AI Video Animator project."""

from __future__ import annotations

from typing import Optional

from config.settings import load_config
from modules.ui.layout import build_app
from modules.utils.logging import setup_logging


def main(config_path: Optional[str] = None) -> None:
    """Load configuration and launch the Gradio interface."""
    config = load_config(config_path)
    logger = setup_logging(config)
    logger.info("Starting AI Video Animator with model %s", config.video_model)
    app = build_app(config)
    app.queue(default_concurrency_limit=1)
    app.launch(share=False, inbrowser=False)


if __name__ == "__main__":
    main()
