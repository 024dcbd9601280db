"""
Query coordinator: loads the order table and answers customer-id searches.

Searches may arrive before the table is ready (for example a scan made while
the export is still downloading). The most recent such search is kept and
answered once the load completes, on the next turn of the event loop.
"""

import asyncio
import logging

from analytics.customer_index import CustomerIndex, normalize_customer_id
from analytics.summary_engine import summarize
from config.config import CustomerAnalyticsConfig
from connectors.customer_selection import CustomerSelectionChannel
from connectors.table_source import TableSource
from models.customer import CustomerSummary
from models.enums import CoordinatorState
from models.errors import (
    CustomerAnalyticsError,
    CustomerNotFoundError,
    TableLoadError,
    TableParseError,
)
from models.events import AnalyticsEvent
from utils.table_parser import parse_table

logger = logging.getLogger(__name__)


class QueryCoordinator:
    """
    State machine EMPTY -> LOADING -> READY (or back to EMPTY on failure)
    that owns the customer index and the active summary.
    """

    def __init__(self, config: CustomerAnalyticsConfig | None = None):
        self.config = config or CustomerAnalyticsConfig()
        self.state = CoordinatorState.EMPTY
        self.index = CustomerIndex()
        self.search_input = ""  # Current query text, as a search box would hold it
        self.pending_id: str | None = None
        self.last_error: CustomerAnalyticsError | None = None
        self._summary: CustomerSummary | None = None
        self._error: str | None = None
        self._pending_handle: asyncio.Handle | None = None
        self._deferred_id: str | None = None  # Id the pending handle will answer
        self._channel: CustomerSelectionChannel | None = None

    # ---------- read API ----------

    def get_summary(self) -> CustomerSummary | None:
        return self._summary

    def get_error(self) -> str | None:
        return self._error

    def list_customer_ids(self) -> tuple[str, ...]:
        return self.index.customer_ids

    def is_ready(self) -> bool:
        return self.state is CoordinatorState.READY

    # ---------- loading ----------

    async def load(self, source: TableSource) -> bool:
        """
        Fetch, parse and index the order table. Failures are recorded, not
        raised. Returns True when the coordinator ends up READY.
        """
        if self.state is CoordinatorState.LOADING:
            logger.warning("Load already in progress; ignoring new load request")
            return False

        self._cancel_deferred_resolution()
        self.state = CoordinatorState.LOADING
        self._error = None
        self.last_error = None
        logger.info(f"Loading order table from {source!r}")

        try:
            text = await source.fetch()
        except asyncio.CancelledError:
            self._reset_cancelled_load()
            raise
        except TableLoadError as e:
            self._fail(e, f"Could not load order table: {e.message}")
            return False
        except Exception as e:
            self._fail(TableLoadError(str(e)), f"Could not load order table: {e}")
            return False

        try:
            index = CustomerIndex.build(parse_table(text))
        except TableParseError as e:
            self._fail(e, f"Parse error: {e.message}")
            return False
        except Exception as e:
            self._fail(TableParseError(str(e)), f"Parse error: {e}")
            return False

        self.index = index
        self.state = CoordinatorState.READY
        logger.info(f"Order table ready: {len(index)} customers")
        self._after_ready(index)
        return True

    def _cancel_deferred_resolution(self) -> None:
        # A reload must not answer a queued search from the index it replaces
        if self._pending_handle is None:
            return
        self._pending_handle.cancel()
        self._pending_handle = None
        if self.pending_id is None:
            self.pending_id = self._deferred_id
        self._deferred_id = None

    def _reset_cancelled_load(self) -> None:
        logger.warning("Load cancelled; order table cleared")
        self.index = CustomerIndex()
        self.state = CoordinatorState.EMPTY
        self._summary = None

    def _fail(self, error: CustomerAnalyticsError, message: str) -> None:
        logger.error(f"{type(error).__name__}: {message}")
        self.index = CustomerIndex()
        self.state = CoordinatorState.EMPTY
        self._summary = None
        self._error = message
        self.last_error = error

    def _after_ready(self, index: CustomerIndex) -> None:
        if self.pending_id:
            customer_id = self.pending_id
            self.pending_id = None
            # Never answer inside the load completion itself
            loop = asyncio.get_running_loop()
            self._pending_handle = loop.call_soon(self._resolve_pending, customer_id, index)
            self._deferred_id = customer_id
            logger.debug(f"Scheduled pending search for {customer_id}")
        elif self.config.preselect_first_customer and index.customer_ids:
            first = index.customer_ids[0]
            self.search_input = first
            self._resolve(first, index)

    def _resolve_pending(self, customer_id: str, index: CustomerIndex) -> None:
        self._pending_handle = None
        self._deferred_id = None
        self.search_input = customer_id
        self._resolve(customer_id, index)

    # ---------- searching ----------

    def search(self, customer_id: str | None) -> CustomerSummary | None:
        """
        Look up a customer. Before the table is ready the id is queued
        (replacing any earlier queued id) and None is returned.
        """
        cid = normalize_customer_id(customer_id)
        if not cid:
            return None
        self.search_input = cid

        if not self.is_ready():
            if self.pending_id and self.pending_id != cid:
                logger.debug(f"Pending search {self.pending_id} superseded by {cid}")
            self.pending_id = cid
            return None

        if self._pending_handle is not None:
            self._pending_handle.cancel()
            self._pending_handle = None
            self._deferred_id = None
        return self._resolve(cid, self.index)

    def _resolve(self, customer_id: str, index: CustomerIndex) -> CustomerSummary | None:
        if customer_id not in index:
            error = CustomerNotFoundError(customer_id)
            logger.info(error.message)
            self._summary = None
            self._error = error.message
            self.last_error = error
            return None

        self._summary = summarize(customer_id, index.records_for(customer_id), self.config)
        self._error = None
        self.last_error = None
        return self._summary

    def clear(self) -> None:
        """Reset the query text and the displayed summary."""
        self.search_input = ""
        self._summary = None

    # ---------- identity events ----------

    def attach(self, channel: CustomerSelectionChannel) -> None:
        """
        Subscribe to a customer-selection channel. An id the channel already
        holds is searched right away, so a scan made before attaching is kept.
        """
        if self._channel is channel:
            return
        self.detach()
        channel.subscribe(self._on_customer_selected)
        self._channel = channel
        held = channel.peek()
        if held and held.strip():
            self.search(held)

    def detach(self) -> None:
        if self._channel is not None:
            self._channel.unsubscribe(self._on_customer_selected)
            self._channel = None

    async def _on_customer_selected(self, event: AnalyticsEvent) -> None:
        customer_id = str(event.payload.get("customer_id") or "")
        if not customer_id.strip():
            return
        self.search(customer_id)
