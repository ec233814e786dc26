"""Debug screenshots of the sign-in flow."""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from playwright.sync_api import Error as PlaywrightError

logger = logging.getLogger(__name__)


class SnapshotRecorder:
    """Saves full-page screenshots when enabled. Never raises."""

    def __init__(self, enabled: bool = False, directory: Union[str, Path] = "./debug-shots"):
        self.enabled = enabled
        self.directory = Path(directory).resolve()

    def capture(self, page, name: str) -> Optional[Path]:
        """Screenshot the page as ``<epoch-ms>_<name>.png``.

        Returns:
            Path of the written file, or None if disabled or the screenshot failed
        """
        if not self.enabled:
            return None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self.directory / f"{int(time.time() * 1000)}_{name}.png"
            page.screenshot(path=str(path), full_page=True)
            logger.debug(f"SNAPSHOT => {path}")
            return path
        except (PlaywrightError, OSError) as e:
            logger.warning(f"SNAPSHOT error: {e}")
            return None
