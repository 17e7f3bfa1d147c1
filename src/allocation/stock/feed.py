"""Inventory feed processing — pages of raw stock into StockRecord.

Pagination state travels as an explicit FeedCursor value; the last committed
position is also persisted as a FeedCheckpoint so a failed run resumes from
the page that failed instead of page 1. Each page's upserts and the
checkpoint advance commit together in one UpsertStockPage command.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Integer, String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.errors import UpstreamUnavailable
from allocation.inventory_feed import get_inventory_feed
from allocation.inventory_feed.port import FeedPage, InventoryFeedPort
from allocation.notification_log.notification_log import RecordNotificationLog
from allocation.stock.aggregator import StockAggregator, VariantRef
from allocation.stock.stock import StockRecord, make_stock_key

logger = structlog.get_logger(__name__)

DEFAULT_FEED = "erp_stock"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class FeedCursor:
    """Position within one feed run.

    ``watermark`` is the lower bound the run queries with and stays fixed for
    the whole run; ``high_watermark`` is the newest observation seen so far
    and becomes the next run's watermark.
    """

    page: int = 1
    total_pages: int = 1
    watermark: datetime | None = None
    high_watermark: datetime | None = None

    @property
    def exhausted(self) -> bool:
        return self.page > self.total_pages

    def advance(self, total_pages: int, observed: datetime | None) -> "FeedCursor":
        high = self.high_watermark
        if observed and (high is None or observed > high):
            high = observed
        return replace(self, page=self.page + 1, total_pages=total_pages, high_watermark=high)

    def next_run(self) -> "FeedCursor":
        return FeedCursor(watermark=self.high_watermark or self.watermark)


@dataclass
class FeedRunResult:
    cursor: FeedCursor
    completed: bool
    pages_processed: list[int] = field(default_factory=list)
    records_upserted: int = 0
    error: str | None = None


@allocation.aggregate
class FeedCheckpoint:
    feed_name = String(identifier=True, required=True, max_length=100)
    next_page = Integer(default=1, min_value=1)
    total_pages = Integer(default=1, min_value=0)
    watermark = DateTime()
    high_watermark = DateTime()
    status = String(max_length=20, default="idle")  # idle | in_progress | failed
    last_error = Text()
    updated_at = DateTime()

    def cursor(self) -> FeedCursor:
        return FeedCursor(
            page=self.next_page,
            total_pages=max(self.total_pages or 1, self.next_page),
            watermark=self.watermark,
            high_watermark=self.high_watermark,
        )

    def record_page(self, cursor: FeedCursor) -> None:
        self.next_page = cursor.page
        self.total_pages = cursor.total_pages
        self.watermark = cursor.watermark
        self.high_watermark = cursor.high_watermark
        self.status = "in_progress"
        self.last_error = None
        self.updated_at = datetime.now(UTC)

    def record_failure(self, cursor: FeedCursor, error: str) -> None:
        self.next_page = cursor.page
        self.total_pages = cursor.total_pages
        self.watermark = cursor.watermark
        self.high_watermark = cursor.high_watermark
        self.status = "failed"
        self.last_error = error
        self.updated_at = datetime.now(UTC)

    def complete(self, next_watermark: datetime | None) -> None:
        self.next_page = 1
        self.total_pages = 1
        self.watermark = next_watermark
        self.high_watermark = None
        self.status = "idle"
        self.last_error = None
        self.updated_at = datetime.now(UTC)


def _checkpoint(feed_name: str) -> FeedCheckpoint:
    repo = current_domain.repository_for(FeedCheckpoint)
    try:
        return repo.get(feed_name)
    except ObjectNotFoundError:
        return FeedCheckpoint(feed_name=feed_name)


@allocation.command(part_of="FeedCheckpoint")
class UpsertStockPage:
    feed_name = String(required=True, max_length=100)
    page = Integer(required=True, min_value=1)
    total_pages = Integer(required=True, min_value=0)
    records = Text(required=True)  # JSON list of feed rows
    watermark = String()  # ISO timestamp the run queries with
    high_watermark = String()


@allocation.command(part_of="FeedCheckpoint")
class RecordFeedFailure:
    feed_name = String(required=True, max_length=100)
    page = Integer(required=True, min_value=1)
    total_pages = Integer(required=True, min_value=0)
    watermark = String()
    high_watermark = String()
    error = Text(required=True)


@allocation.command(part_of="FeedCheckpoint")
class CompleteFeedRun:
    feed_name = String(required=True, max_length=100)
    next_watermark = String()


@allocation.command_handler(part_of=FeedCheckpoint)
class FeedCheckpointHandler:
    @handle(UpsertStockPage)
    def upsert_stock_page(self, command):
        stock_repo = current_domain.repository_for(StockRecord)
        upserted = 0
        for row in json.loads(command.records):
            observed_at = _from_iso(row["timestamp"])
            try:
                record = stock_repo.get(make_stock_key(row["sku"], row["outlet_id"]))
            except ObjectNotFoundError:
                record = StockRecord.observe(
                    sku=row["sku"],
                    store_id=row["outlet_id"],
                    raw_stock=row["stock"],
                    buffer_stock=row["buffer_stock"],
                    observed_at=observed_at,
                    item_name=row.get("item_name"),
                )
            else:
                if not record.overwrite(row["stock"], row["buffer_stock"], observed_at, row.get("item_name")):
                    continue
            stock_repo.add(record)
            upserted += 1

        checkpoint = _checkpoint(command.feed_name)
        checkpoint.record_page(
            FeedCursor(
                page=command.page + 1,
                total_pages=command.total_pages,
                watermark=_from_iso(command.watermark),
                high_watermark=_from_iso(command.high_watermark),
            )
        )
        current_domain.repository_for(FeedCheckpoint).add(checkpoint)
        return upserted

    @handle(RecordFeedFailure)
    def record_feed_failure(self, command):
        checkpoint = _checkpoint(command.feed_name)
        checkpoint.record_failure(
            FeedCursor(
                page=command.page,
                total_pages=command.total_pages,
                watermark=_from_iso(command.watermark),
                high_watermark=_from_iso(command.high_watermark),
            ),
            command.error,
        )
        current_domain.repository_for(FeedCheckpoint).add(checkpoint)

    @handle(CompleteFeedRun)
    def complete_feed_run(self, command):
        checkpoint = _checkpoint(command.feed_name)
        checkpoint.complete(_from_iso(command.next_watermark))
        current_domain.repository_for(FeedCheckpoint).add(checkpoint)


def load_cursor(feed_name: str = DEFAULT_FEED) -> FeedCursor:
    """Resume position for ``feed_name``; a fresh cursor when never run."""
    try:
        return current_domain.repository_for(FeedCheckpoint).get(feed_name).cursor()
    except ObjectNotFoundError:
        return FeedCursor()


class InventoryFeedSync:
    """Walks the inventory feed page by page, halting on the first failure.

    Failures are logged and written to the NotificationLog, never raised:
    the sync runs unattended.
    """

    def __init__(
        self,
        feed: InventoryFeedPort | None = None,
        feed_name: str = DEFAULT_FEED,
        aggregator: StockAggregator | None = None,
    ):
        self.feed = feed or get_inventory_feed()
        self.feed_name = feed_name
        self.aggregator = aggregator

    def run(self, cursor: FeedCursor | None = None) -> FeedRunResult:
        cursor = cursor or load_cursor(self.feed_name)
        result = FeedRunResult(cursor=cursor, completed=False)
        logger.info("Inventory feed sync started", feed=self.feed_name, page=cursor.page)

        while not cursor.exhausted:
            try:
                page = self.feed.list_stock(cursor.watermark, cursor.page)
                if not page.records and cursor.page == 1:
                    self._notify("No Data Synced", "No data found for the latest ERP sync.", success=True)
                    break
                cursor = self._commit_page(cursor, page, result)
            except UpstreamUnavailable as exc:
                return self._fail(result, cursor, str(exc))
            except Exception as exc:
                return self._fail(result, cursor, f"Unexpected error: {exc}")

        current_domain.process(
            CompleteFeedRun(feed_name=self.feed_name, next_watermark=_iso(cursor.next_run().watermark)),
            asynchronous=False,
        )
        if result.pages_processed:
            self._notify("Stock Processing Complete", "All stock data pages processed successfully.", success=True)
        result.cursor = cursor.next_run()
        result.completed = True
        logger.info(
            "Inventory feed sync completed",
            feed=self.feed_name,
            pages=len(result.pages_processed),
            records=result.records_upserted,
        )
        return result

    def _commit_page(self, cursor: FeedCursor, page: FeedPage, result: FeedRunResult) -> FeedCursor:
        observed = max((r.timestamp for r in page.records), default=None)
        advanced = cursor.advance(page.total_pages, observed)
        rows = [
            {
                "sku": r.sku,
                "outlet_id": r.outlet_id,
                "stock": r.stock,
                "buffer_stock": r.buffer_stock,
                "timestamp": _iso(r.timestamp),
                "item_name": r.item_name,
            }
            for r in page.records
        ]
        upserted = current_domain.process(
            UpsertStockPage(
                feed_name=self.feed_name,
                page=cursor.page,
                total_pages=page.total_pages,
                records=json.dumps(rows),
                watermark=_iso(advanced.watermark),
                high_watermark=_iso(advanced.high_watermark),
            ),
            asynchronous=False,
        )
        result.pages_processed.append(cursor.page)
        result.records_upserted += upserted or 0
        result.cursor = advanced
        logger.info("Inventory feed page processed", feed=self.feed_name, page=cursor.page, records=upserted)
        self._notify(
            "Stock Processing Success",
            f"Stock data processed successfully for page {cursor.page}.",
            success=True,
        )

        if self.aggregator is not None and page.records:
            variants = {r.sku: VariantRef(sku=r.sku, title=r.item_name) for r in page.records}
            self.aggregator.aggregate(variants.values())
        return advanced

    def _fail(self, result: FeedRunResult, cursor: FeedCursor, error: str) -> FeedRunResult:
        logger.error("Inventory feed page failed", feed=self.feed_name, page=cursor.page, error=error)
        current_domain.process(
            RecordFeedFailure(
                feed_name=self.feed_name,
                page=cursor.page,
                total_pages=cursor.total_pages,
                watermark=_iso(cursor.watermark),
                high_watermark=_iso(cursor.high_watermark),
                error=error,
            ),
            asynchronous=False,
        )
        self._notify("Error Processing Stock Data", f"Error on page {cursor.page}: {error}", success=False)
        result.cursor = cursor
        result.error = error
        return result

    def _notify(self, title: str, markdown: str, success: bool) -> None:
        try:
            current_domain.process(
                RecordNotificationLog(title=title, markdown=markdown, success=success, source=self.feed_name),
                asynchronous=False,
            )
        except Exception as exc:
            logger.error("Failed to write notification log", title=title, error=str(exc))
