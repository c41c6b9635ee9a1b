"""
Polling viewer for a shared split.

Other devices see edits by re-fetching the split on an interval while the
view is in the foreground. A fetch can land between an editor's change and
its debounced save and return totals that are all zero; such payloads do not
replace the last known-good totals unless nothing is assigned at all.
"""
import enum
import logging
import threading
from typing import Callable, Optional
from easysplit.core.config import settings
from easysplit.client.api_client import ApiError, NotFoundError, SplitApiClient
from easysplit.schemas.split import SplitResponse
from easysplit.services import allocation_service

logger = logging.getLogger(__name__)


class ViewState(str, enum.Enum):
    """Viewer state."""
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not_found"
    ERROR = "error"


def is_trustworthy(split: SplitResponse) -> bool:
    """
    True when the payload can replace what is on screen: it has non-zero
    totals, or its zeros are genuine because nothing is assigned to anyone.
    """
    if not split.totals:
        return False
    if any(t.total > 0 for t in split.totals):
        return True
    recomputed = allocation_service.compute_quantity_totals(
        split.people, split.items, split.quantities, split.service_charge, split.tip_percent
    )
    return all(t.total == 0 for t in recomputed)


class SplitViewer:
    """Holds the last known-good copy of a split and refreshes it by polling."""

    def __init__(self, api: SplitApiClient, code: str, interval: float = None,
                 on_update: Callable[[SplitResponse], None] = None):
        self.api = api
        self.code = code.upper()
        self.interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
        self.on_update = on_update
        self.split: Optional[SplitResponse] = None
        self.state = ViewState.LOADING
        self._active = threading.Event()
        self._active.set()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def refresh(self) -> ViewState:
        """Fetch once and update the known-good copy if the payload is trustworthy."""
        try:
            fetched = self.api.get_split(self.code)
        except NotFoundError:
            logger.info("Split %s not found", self.code)
            self.split = None
            self.state = ViewState.NOT_FOUND
            return self.state
        except ApiError as e:
            logger.warning("Polling split %s failed: %s", self.code, e)
            if self.split is None:
                self.state = ViewState.ERROR
            return self.state

        if self.split is None or is_trustworthy(fetched):
            self.split = fetched
            if self.on_update:
                self.on_update(fetched)
        else:
            logger.debug("Ignoring transient all-zero totals for %s", self.code)
        self.state = ViewState.READY
        return self.state

    def set_active(self, active: bool) -> None:
        """Polling only runs while the view is in the foreground."""
        if active:
            self._active.set()
        else:
            self._active.clear()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name=f"poll-{self.code}", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        self._active.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval + 1)
            self._thread = None

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._active.wait()
            if self._stopped.is_set():
                break
            self.refresh()
            if self.state == ViewState.NOT_FOUND:
                break
            self._stopped.wait(self.interval)
