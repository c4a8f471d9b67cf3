from __future__ import annotations

import asyncio
from typing import List, Optional

from action_targets.app import DemoApp
from action_targets.config import AppSettings
from action_targets.core.logging import configure_logging


def main(names: Optional[List[str]] = None) -> int:
    settings = AppSettings()
    configure_logging(settings.log_level)
    app = DemoApp(settings)
    asyncio.run(app.run(names))
    return 0
