"""
Debounced persistence of a draft.

Edits restart a short timer; when it expires the draft is saved once. The
first save creates the split and later saves replace it in place. A failed
save is reported and not retried: the draft stays dirty until the next
successful save.
"""
import logging
import threading
from typing import Callable, Optional
from easysplit.core.config import settings
from easysplit.core.exceptions import EasySplitError
from easysplit.client.api_client import ApiError, SplitApiClient
from easysplit.client.draft import SplitDraft
from easysplit.client.local_store import LocalSplitRegistry

logger = logging.getLogger(__name__)


class SplitAutosaver:
    """Save ``draft`` through ``api`` at most once per quiet period of ``delay`` seconds."""

    def __init__(self, draft: SplitDraft, api: SplitApiClient, code: Optional[str] = None,
                 registry: Optional[LocalSplitRegistry] = None, delay: float = None,
                 on_error: Callable[[Exception], None] = None,
                 on_saved: Callable[[str], None] = None,
                 timer_factory=threading.Timer):
        self.draft = draft
        self.api = api
        self.code = code
        self.registry = registry
        self.delay = settings.SAVE_DEBOUNCE_SECONDS if delay is None else delay
        self.on_error = on_error
        self.on_saved = on_saved
        self.last_error: Optional[Exception] = None
        self._timer_factory = timer_factory
        self._timer = None
        self._lock = threading.Lock()
        # Held for a whole save so a second save waits and reuses the created code
        self._save_lock = threading.Lock()

    def attach(self) -> None:
        """Schedule a save on every draft mutation."""
        self.draft.listeners.append(self.schedule)

    def detach(self) -> None:
        if self.schedule in self.draft.listeners:
            self.draft.listeners.remove(self.schedule)
        self.cancel()

    def schedule(self) -> None:
        """Restart the quiet-period timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def flush(self) -> bool:
        """Save immediately, dropping any pending timer."""
        self.cancel()
        return self.save()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self.save()

    def save(self) -> bool:
        """Save the current draft. Returns False and reports the error on failure."""
        with self._save_lock:
            error = self._save_locked()
            code = self.code
        if error is not None:
            if self.on_error:
                self.on_error(error)
            return False
        if self.on_saved:
            self.on_saved(code)
        return True

    def _save_locked(self) -> Optional[Exception]:
        revision = self.draft.revision
        try:
            payload = self.draft.to_payload()
            if self.code is None:
                created = self.api.create_split(payload)
                self.code = created.code
                logger.info("Created split %s", self.code)
            else:
                self.api.update_split(self.code, payload)
        except (ApiError, EasySplitError, ValueError) as e:
            logger.warning("Saving split %s failed: %s", self.code or "(new)", e)
            self.last_error = e
            return e

        self.last_error = None
        self.draft.mark_saved(revision)
        if self.registry is not None:
            self.registry.add_split(self.code)
        return None
