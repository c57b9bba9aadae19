"""
Run orchestrator for the Listing Watch system.

One call to ``run`` performs a single fetch, compare and notify cycle:

    Start -> Fetched -> BaselineAbsent -> Done
                     -> BaselinePresent -> Diffed -> Unchanged -> Done
                                                  -> Changed -> Done

Every failure is a typed ``ListingWatchError``. ``run`` is the single place
that decides whether a failure aborts the run or is logged and tolerated.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from .components.differencer import Differencer
from .components.listing_fetcher import FetchResult, ListingFetcher
from .components.notifier import NotifierFactory
from .components.snapshot_store import create_snapshot_store
from .interfaces import IDifferencer, IListingFetcher, INotifier, ISnapshotStore
from .models.config import Configuration
from .models.notification import DeliveryResult
from .models.diff import DiffResult
from .models.record import Record, serialize_records
from .utils.error_handling import (
    ListingWatchError,
    SerializationError,
    StoreTransientError,
    TransportError,
    get_error_tracker,
)
from .utils.logging import get_logger


class RunState(Enum):
    """States a run passes through."""

    START = "start"
    FETCHED = "fetched"
    BASELINE_ABSENT = "baseline_absent"
    BASELINE_PRESENT = "baseline_present"
    DIFFED = "diffed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    DONE = "done"


class RunOutcome(Enum):
    """How a run ended."""

    BASELINE_CREATED = "baseline_created"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RunReport:
    """Summary of one run."""

    outcome: RunOutcome
    record_count: int = 0
    diff: Optional[DiffResult] = None
    delivery: Optional[DeliveryResult] = None
    pending_delivered: bool = False
    error: Optional[ListingWatchError] = None
    run_id: Optional[str] = None

    @property
    def notified(self) -> bool:
        return self.delivery is not None and self.delivery.success

    @property
    def fatal(self) -> bool:
        return self.outcome == RunOutcome.FAILED


class ChangeDetectionOrchestrator:
    """
    Sequences fetch, snapshot comparison, persistence and notification.

    Args:
        fetcher: Extracts the current listings
        store: Holds the last known snapshot
        differencer: Compares snapshots
        notifier: Delivers change reports; may be None for dry runs
        key: Snapshot key in the store
        local_file: Path of the local working snapshot
        pending_marker: Keep the report in the store until delivery succeeds
        skip_on_degraded_fetch: End the run without touching the store when
            the fetch failed
        dry_run: Fetch and compare only; never write the store or notify
    """

    def __init__(
        self,
        fetcher: IListingFetcher,
        store: ISnapshotStore,
        differencer: IDifferencer,
        notifier: Optional[INotifier],
        key: str = "jobs.json",
        local_file: str = "jobs.json",
        pending_marker: bool = True,
        skip_on_degraded_fetch: bool = True,
        dry_run: bool = False,
    ):
        if notifier is None and not dry_run:
            raise ValueError("A notifier is required unless dry_run is set")

        self.fetcher = fetcher
        self.store = store
        self.differencer = differencer
        self.notifier = notifier
        self.key = key
        self.pending_key = f"{key}.pending"
        self.local_file = Path(local_file)
        self.pending_marker = pending_marker
        self.skip_on_degraded_fetch = skip_on_degraded_fetch
        self.dry_run = dry_run

        self.state = RunState.START
        self.run_id: Optional[str] = None
        self._base_logger = get_logger("orchestrator", {"key": key})
        self.logger = self._base_logger
        self.error_tracker = get_error_tracker()

    @classmethod
    def from_config(
        cls, config: Configuration, dry_run: bool = False, session=None
    ) -> "ChangeDetectionOrchestrator":
        """
        Build an orchestrator from resolved configuration.

        The bucket name and, unless dry_run is set, the email password must
        already be resolved.
        """
        notifier = None
        if not dry_run:
            notifier = NotifierFactory.create_notifier(config.notifier)

        return cls(
            fetcher=ListingFetcher(config.source),
            store=create_snapshot_store(config.storage, session=session),
            differencer=Differencer(),
            notifier=notifier,
            key=config.storage.key,
            local_file=config.local_file,
            pending_marker=config.storage.pending_marker,
            skip_on_degraded_fetch=config.skip_on_degraded_fetch,
            dry_run=dry_run,
        )

    def run(self) -> RunReport:
        """
        Run one cycle.

        Fatal errors end the run with a FAILED report; they are never
        raised to the caller.
        """
        self.state = RunState.START
        self.run_id = uuid.uuid4().hex[:12]
        self.logger = self._base_logger.bind(run_id=self.run_id)
        try:
            report = self._run()
        except ListingWatchError as e:
            self.error_tracker.record_exception(
                "orchestrator",
                e,
                context={"state": self.state.value, "run_id": self.run_id},
            )
            self.logger.critical(
                "Run aborted",
                extra={
                    "state": self.state.value,
                    "error_type": type(e).__name__,
                    "error": e.message,
                },
            )
            return RunReport(outcome=RunOutcome.FAILED, error=e, run_id=self.run_id)

        report.run_id = self.run_id
        self.state = RunState.DONE
        self.logger.info(
            "Run complete",
            extra={"outcome": report.outcome.value, "records": report.record_count},
        )
        return report

    def _run(self) -> RunReport:
        pending_delivered, undelivered = False, None
        if self.pending_marker and not self.dry_run:
            pending_delivered, undelivered = self._redeliver_pending()

        fetch_result = self.fetcher.fetch()
        records = fetch_result.records
        current = self._write_local_snapshot(records)
        self.state = RunState.FETCHED
        self.logger.info("Listings fetched", extra={"records": len(records)})

        if fetch_result.degraded and self.skip_on_degraded_fetch:
            return self._skip_degraded(fetch_result, pending_delivered)

        prior = self.store.get(self.key)
        if prior is None:
            self.state = RunState.BASELINE_ABSENT
            self.logger.info("No snapshot in store, uploading baseline")
            if not self.dry_run:
                self.store.put(self.key, current)
            return RunReport(
                outcome=RunOutcome.BASELINE_CREATED,
                record_count=len(records),
                pending_delivered=pending_delivered,
            )

        self.state = RunState.BASELINE_PRESENT
        diff = self.differencer.diff(prior, current)
        self.state = RunState.DIFFED

        if diff.is_empty:
            self.state = RunState.UNCHANGED
            self.logger.info("No listing updates")
            return RunReport(
                outcome=RunOutcome.UNCHANGED,
                record_count=len(records),
                diff=diff,
                pending_delivered=pending_delivered,
            )

        self.state = RunState.CHANGED
        self.logger.info("Changes detected", extra={"summary": diff.summary()})
        self.logger.debug("Diff", extra={"diff": diff.to_text()})

        delivery = None
        error = None
        if not self.dry_run:
            body = diff.to_html()
            if undelivered:
                body = undelivered + "\n" + body
            self._persist(current, body, undelivered)
            delivery, error = self._deliver(body)

        return RunReport(
            outcome=RunOutcome.CHANGED,
            record_count=len(records),
            diff=diff,
            delivery=delivery,
            pending_delivered=pending_delivered,
            error=error,
        )

    def _write_local_snapshot(self, records: List[Record]) -> bytes:
        """Write the working snapshot and read it back as the canonical bytes."""
        data = serialize_records(records)
        try:
            with open(self.local_file, "wb") as f:
                f.write(data)
            with open(self.local_file, "rb") as f:
                return f.read()
        except OSError as e:
            raise SerializationError(
                f"Failed to save working snapshot to {self.local_file}: {e}", e
            )

    def _skip_degraded(
        self, fetch_result: FetchResult, pending_delivered: bool
    ) -> RunReport:
        self.logger.warning(
            "Fetch degraded, leaving stored snapshot untouched",
            extra={"error": fetch_result.error.message if fetch_result.error else None},
        )
        return RunReport(
            outcome=RunOutcome.SKIPPED,
            record_count=0,
            pending_delivered=pending_delivered,
            error=fetch_result.error,
        )

    def _persist(
        self, current: bytes, body: str, undelivered: Optional[str] = None
    ) -> None:
        """
        Store the pending report, then the new snapshot.

        A failed snapshot write puts the pending marker back the way it was
        (the undelivered earlier report, or nothing) so the next run detects
        and reports the same change.
        """
        if self.pending_marker:
            self.store.put(self.pending_key, body.encode("utf-8"))

        try:
            self.store.put(self.key, current)
        except StoreTransientError:
            if self.pending_marker:
                self._restore_pending(undelivered)
            raise

        self.logger.info("Snapshot updated")

    def _deliver(self, body: str):
        """Send the report; failure is logged and never undoes the snapshot write."""
        try:
            delivery = self.notifier.notify(body)
        except TransportError as e:
            self._record_transport_error(e)
            return None, e
        except ListingWatchError:
            raise
        except Exception as e:
            error = TransportError(f"Notifier raised: {e}", e)
            self._record_transport_error(error)
            return None, error

        if not delivery.success:
            error = TransportError(delivery.error_message or "Delivery failed")
            self._record_transport_error(error)
            return delivery, error

        self.logger.info(
            "Notification sent",
            extra={
                "delivery_time": delivery.delivery_time.isoformat(),
                "attempts": delivery.attempts,
            },
        )
        if self.pending_marker:
            self._clear_pending()
        return delivery, None

    def _record_transport_error(self, error: TransportError) -> None:
        self.error_tracker.record_exception("orchestrator", error)
        self.logger.error(
            "Failed to send notification",
            extra={
                "error": error.message,
                "pending_marker": self.pending_marker,
            },
        )

    def _redeliver_pending(self) -> Tuple[bool, Optional[str]]:
        """
        Deliver a report left behind by an earlier run.

        Returns:
            Whether it was delivered, and the report body when it was not
        """
        pending = self.store.get(self.pending_key)
        if pending is None:
            return False, None

        self.logger.info("Delivering pending notification from a previous run")
        body = pending.decode("utf-8", errors="replace")
        delivery, error = self._deliver(body)
        if error is None and delivery is not None and delivery.success:
            return True, None
        return False, body

    def _restore_pending(self, undelivered: Optional[str]) -> None:
        if undelivered is None:
            self._clear_pending()
            return

        try:
            self.store.put(self.pending_key, undelivered.encode("utf-8"))
        except StoreTransientError as e:
            self.error_tracker.record_exception("orchestrator", e)
            self.logger.warning(
                "Could not restore pending notification, it may repeat changes",
                extra={"error": e.message},
            )

    def _clear_pending(self) -> None:
        try:
            self.store.delete(self.pending_key)
        except StoreTransientError as e:
            self.error_tracker.record_exception("orchestrator", e)
            self.logger.warning(
                "Could not clear pending notification, it may be sent again",
                extra={"error": e.message},
            )
