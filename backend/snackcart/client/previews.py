"""
SnackCart Client — Local Preview References
============================================

What:  Issues and releases the preview handles shown in the upload panel
       before a photo is sent to the server.
Why:   Each chosen file pins its bytes in memory until the reference is
       released. Choosing files repeatedly must not accumulate them, so the
       view-model releases the old reference before creating the next one.
"""

import logging
import uuid
from typing import Dict, Optional

from snackcart.client.state import ChosenFile

logger = logging.getLogger(__name__)

PREVIEW_SCHEME = "preview:"


class PreviewRegistry:
    """In-memory table of live preview references (`preview:<uuid>` → file)."""

    def __init__(self):
        self._live: Dict[str, ChosenFile] = {}

    def create(self, file: ChosenFile) -> str:
        ref = f"{PREVIEW_SCHEME}{uuid.uuid4().hex}"
        self._live[ref] = file
        logger.debug("Preview created: %s (%s, %d bytes)", ref, file.filename, len(file.content))
        return ref

    def release(self, ref: Optional[str]) -> None:
        """Drops a reference. Unknown or None references are ignored."""
        if ref is None:
            return
        if self._live.pop(ref, None) is not None:
            logger.debug("Preview released: %s", ref)

    def get(self, ref: str) -> Optional[ChosenFile]:
        return self._live.get(ref)

    @property
    def live_count(self) -> int:
        return len(self._live)
