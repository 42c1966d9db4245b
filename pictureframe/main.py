from __future__ import annotations

from .api import create_app
from .config import FrameConfig, setup_logging

config = FrameConfig.from_env()
setup_logging(config.log_level)
app = create_app(config)
