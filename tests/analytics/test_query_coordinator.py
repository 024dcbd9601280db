import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from analytics.query_coordinator import QueryCoordinator
from config.config import CustomerAnalyticsConfig
from connectors.customer_selection import CustomerSelectionChannel
from connectors.table_source import StaticTableSource
from models.enums import CoordinatorState, ErrorKind
from models.errors import CustomerNotFoundError, TableLoadError, TableParseError

TABLE = "\n".join(
    [
        "CUSTOMER_ID,CUSTOMER_NAME,ORDER_ID,ORDER_NUMBER,BUSINESS_DATE,ITEM_NAME,ITEM_UNIT_AMOUNT,ITEM_AMOUNT_TOTAL,ITEM_QUANTITY,TRANSACTION_ID",
        "X1,Ada,O1,1,2024-01-01,Coffee,5,5,1,",
        "X1,Ada,O2,2,2024-01-08,Coffee,5,5,1,",
        "x2,Ben,O3,3,2024-01-03,Tea,3,3,1,",
        ",,O4,4,2024-01-04,Soda,2,2,1,AB-1234",
    ]
)
HEADER_ONLY = TABLE.split("\n")[0] + "\n"


@pytest.fixture
def coordinator() -> QueryCoordinator:
    return QueryCoordinator()


async def start_slow_load(coordinator: QueryCoordinator, text: str = TABLE) -> asyncio.Task:
    """Start a load that stays in flight until the test awaits the task."""
    task = asyncio.create_task(coordinator.load(StaticTableSource(text, delay=0.01)))
    await asyncio.sleep(0)  # Let the load reach its fetch
    assert coordinator.state is CoordinatorState.LOADING
    return task


# --- Test initial state --- #


def test_initial_state(coordinator):
    assert coordinator.state is CoordinatorState.EMPTY
    assert not coordinator.is_ready()
    assert coordinator.get_summary() is None
    assert coordinator.get_error() is None
    assert coordinator.list_customer_ids() == ()
    assert coordinator.search_input == ""


# --- Test load --- #


@pytest.mark.asyncio
async def test_load_success_builds_index(coordinator):
    ok = await coordinator.load(StaticTableSource(TABLE))
    assert ok is True
    assert coordinator.is_ready()
    assert coordinator.list_customer_ids() == ("AB", "X1", "X2")
    assert coordinator.get_error() is None
    assert coordinator.get_summary() is None


@pytest.mark.asyncio
async def test_load_with_zero_customers_is_still_ready(coordinator):
    assert await coordinator.load(StaticTableSource(HEADER_ONLY)) is True
    assert coordinator.is_ready()
    assert coordinator.list_customer_ids() == ()

    coordinator.search("x1")
    assert coordinator.get_error() == "Customer X1 not found in dataset."


@pytest.mark.asyncio
async def test_load_failure_returns_to_empty(coordinator, caplog):
    with caplog.at_level(logging.ERROR):
        ok = await coordinator.load(StaticTableSource(None, error="404 Not Found"))

    assert ok is False
    assert coordinator.state is CoordinatorState.EMPTY
    assert coordinator.get_error() == "Could not load order table: 404 Not Found"
    assert isinstance(coordinator.last_error, TableLoadError)
    assert coordinator.last_error.kind is ErrorKind.LOAD_FAILURE
    assert coordinator.list_customer_ids() == ()
    assert "TableLoadError" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_fetch_error_is_a_load_failure(coordinator):
    source = AsyncMock()
    source.fetch.side_effect = ConnectionResetError("peer reset")

    assert await coordinator.load(source) is False
    assert coordinator.state is CoordinatorState.EMPTY
    assert coordinator.get_error() == "Could not load order table: peer reset"
    assert isinstance(coordinator.last_error, TableLoadError)


@pytest.mark.asyncio
async def test_parse_failure_returns_to_empty(coordinator):
    source = AsyncMock()
    source.fetch.return_value = b"\xff\xfe\xfa"

    assert await coordinator.load(source) is False
    assert coordinator.state is CoordinatorState.EMPTY
    assert coordinator.get_error().startswith("Parse error:")
    assert isinstance(coordinator.last_error, TableParseError)
    assert coordinator.last_error.kind is ErrorKind.PARSE_FAILURE


@pytest.mark.asyncio
async def test_failed_reload_discards_previous_index(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    coordinator.search("x1")
    assert coordinator.get_summary() is not None

    await coordinator.load(StaticTableSource(None, error="gone"))
    assert coordinator.state is CoordinatorState.EMPTY
    assert coordinator.list_customer_ids() == ()
    assert coordinator.get_summary() is None


@pytest.mark.asyncio
async def test_successful_load_clears_previous_error(coordinator):
    await coordinator.load(StaticTableSource(None, error="offline"))
    assert coordinator.get_error() is not None

    await coordinator.load(StaticTableSource(TABLE))
    assert coordinator.get_error() is None
    assert coordinator.last_error is None
    assert coordinator.is_ready()


@pytest.mark.asyncio
async def test_second_load_while_loading_is_rejected(coordinator, caplog):
    task = await start_slow_load(coordinator)
    with caplog.at_level(logging.WARNING):
        assert await coordinator.load(StaticTableSource(HEADER_ONLY)) is False
    assert "already in progress" in caplog.text

    assert await task is True
    assert coordinator.list_customer_ids() == ("AB", "X1", "X2")


@pytest.mark.asyncio
async def test_cancelled_load_returns_to_empty(coordinator, caplog):
    coordinator.search("x1")
    task = asyncio.create_task(coordinator.load(StaticTableSource(TABLE, delay=1)))
    await asyncio.sleep(0)
    assert coordinator.state is CoordinatorState.LOADING

    task.cancel()
    with caplog.at_level(logging.WARNING):
        with pytest.raises(asyncio.CancelledError):
            await task
    assert coordinator.state is CoordinatorState.EMPTY
    assert len(coordinator.index) == 0
    assert coordinator.pending_id == "X1"
    assert "Load cancelled" in caplog.text

    # The next load is accepted and answers the queued search
    assert await coordinator.load(StaticTableSource(TABLE)) is True
    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X1"


# --- Test search --- #


@pytest.mark.asyncio
async def test_search_found_exposes_summary(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    summary = coordinator.search(" x1 ")

    assert summary is not None
    assert coordinator.get_summary() is summary
    assert summary.customer_id == "X1"
    assert summary.customer_name == "Ada"
    assert summary.total_visits == 2
    assert coordinator.search_input == "X1"
    assert coordinator.get_error() is None


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["abc1", "ABC1", " abc1 "])
async def test_search_normalizes_ids(query):
    coordinator = QueryCoordinator()
    await coordinator.load(StaticTableSource("CUSTOMER_ID,ORDER_ID\nAbC1,O1\n"))
    assert coordinator.search(query).customer_id == "ABC1"


@pytest.mark.asyncio
async def test_search_for_derived_customer(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    summary = coordinator.search("ab")
    assert summary.customer_id == "AB"
    assert summary.total_spend == 2


@pytest.mark.asyncio
async def test_search_not_found_clears_summary(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    coordinator.search("x1")

    assert coordinator.search("zz9") is None
    assert coordinator.get_summary() is None
    assert coordinator.get_error() == "Customer ZZ9 not found in dataset."
    assert isinstance(coordinator.last_error, CustomerNotFoundError)
    assert coordinator.last_error.kind is ErrorKind.CUSTOMER_NOT_FOUND
    assert coordinator.is_ready()


@pytest.mark.asyncio
async def test_valid_search_clears_not_found_error(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    coordinator.search("zz9")
    coordinator.search("x2")
    assert coordinator.get_error() is None
    assert coordinator.get_summary().customer_id == "X2"


@pytest.mark.asyncio
async def test_blank_search_is_ignored(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    coordinator.search("x1")
    assert coordinator.search("   ") is None
    assert coordinator.search(None) is None
    assert coordinator.get_summary().customer_id == "X1"
    assert coordinator.search_input == "X1"


@pytest.mark.asyncio
async def test_clear_resets_summary_and_input_only(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    coordinator.search("x1")
    coordinator.clear()

    assert coordinator.get_summary() is None
    assert coordinator.search_input == ""
    assert coordinator.is_ready()
    assert coordinator.list_customer_ids() == ("AB", "X1", "X2")


# --- Test pending searches --- #


def test_search_before_any_load_is_queued(coordinator):
    assert coordinator.search("x1") is None
    assert coordinator.pending_id == "X1"
    assert coordinator.get_summary() is None


@pytest.mark.asyncio
async def test_pending_search_resolves_after_load(coordinator):
    task = await start_slow_load(coordinator)
    assert coordinator.search("x1") is None
    assert coordinator.pending_id == "X1"

    await task
    await asyncio.sleep(0)
    assert coordinator.pending_id is None
    summary = coordinator.get_summary()
    assert summary is not None
    assert summary.customer_id == "X1"
    assert coordinator.search_input == "X1"


@pytest.mark.asyncio
async def test_latest_pending_search_wins(coordinator):
    task = await start_slow_load(coordinator)
    coordinator.search("x1")
    coordinator.search("x2")
    assert coordinator.pending_id == "X2"

    await task
    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X2"


@pytest.mark.asyncio
async def test_pending_search_resolves_exactly_once(coordinator, monkeypatch):
    calls = []
    original = coordinator._resolve

    def counting_resolve(customer_id, index):
        calls.append(customer_id)
        return original(customer_id, index)

    monkeypatch.setattr(coordinator, "_resolve", counting_resolve)
    task = await start_slow_load(coordinator)
    coordinator.search("x1")
    await task
    for _ in range(3):
        await asyncio.sleep(0)
    assert calls == ["X1"]


@pytest.mark.asyncio
async def test_pending_search_for_unknown_id_sets_error(coordinator):
    task = await start_slow_load(coordinator)
    coordinator.search("missing")
    await task
    await asyncio.sleep(0)
    assert coordinator.get_summary() is None
    assert coordinator.get_error() == "Customer MISSING not found in dataset."


@pytest.mark.asyncio
async def test_pending_search_survives_failed_load(coordinator):
    coordinator.search("x2")
    await coordinator.load(StaticTableSource(None, error="offline"))
    assert coordinator.pending_id == "X2"

    await coordinator.load(StaticTableSource(TABLE))
    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X2"


@pytest.mark.asyncio
async def test_pending_resolution_is_deferred_past_load_completion(coordinator):
    coordinator.search("x1")
    await coordinator.load(StaticTableSource(TABLE))
    # Still unanswered when load() returns
    assert coordinator.get_summary() is None
    assert coordinator.pending_id is None

    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X1"


@pytest.mark.asyncio
async def test_search_after_ready_supersedes_deferred_pending(coordinator):
    coordinator.search("x1")
    await coordinator.load(StaticTableSource(TABLE))
    coordinator.search("x2")  # Arrives before the deferred resolution runs
    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X2"


@pytest.mark.asyncio
async def test_reload_answers_deferred_pending_from_new_index(coordinator, monkeypatch):
    reloaded = "\n".join(TABLE.split("\n")[:2])  # X1 with a single order
    answered = []
    original = coordinator._resolve

    def recording_resolve(customer_id, index):
        answered.append((customer_id, index, coordinator.state))
        return original(customer_id, index)

    monkeypatch.setattr(coordinator, "_resolve", recording_resolve)
    coordinator.search("x1")
    await coordinator.load(StaticTableSource(TABLE))
    # Reload before the deferred resolution gets its turn
    assert await coordinator.load(StaticTableSource(reloaded, delay=0.01)) is True
    assert answered == []

    await asyncio.sleep(0)
    assert len(answered) == 1
    customer_id, index, state = answered[0]
    assert customer_id == "X1"
    assert index is coordinator.index
    assert state is CoordinatorState.READY
    assert coordinator.get_summary().total_visits == 1


@pytest.mark.asyncio
async def test_preselect_first_customer():
    coordinator = QueryCoordinator(CustomerAnalyticsConfig(preselect_first_customer=True))
    await coordinator.load(StaticTableSource(TABLE))
    assert coordinator.search_input == "AB"
    assert coordinator.get_summary().customer_id == "AB"


# --- Test channel integration --- #


@pytest.mark.asyncio
async def test_channel_emissions_become_searches(coordinator):
    channel = CustomerSelectionChannel()
    coordinator.attach(channel)
    await coordinator.load(StaticTableSource(TABLE))

    await channel.set("x2")
    assert coordinator.get_summary().customer_id == "X2"

    await channel.set("   ")
    assert coordinator.get_summary().customer_id == "X2"


@pytest.mark.asyncio
async def test_channel_emission_during_load_is_queued(coordinator):
    channel = CustomerSelectionChannel()
    coordinator.attach(channel)
    task = await start_slow_load(coordinator)

    await channel.set("x1")
    assert coordinator.pending_id == "X1"

    await task
    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X1"


@pytest.mark.asyncio
async def test_attach_replays_id_held_before_attaching(coordinator):
    channel = CustomerSelectionChannel()
    await channel.set("x1")  # Scanned before anyone listens
    coordinator.attach(channel)
    assert coordinator.pending_id == "X1"

    await coordinator.load(StaticTableSource(TABLE))
    await asyncio.sleep(0)
    assert coordinator.get_summary().customer_id == "X1"


@pytest.mark.asyncio
async def test_attach_when_ready_searches_held_id(coordinator):
    await coordinator.load(StaticTableSource(TABLE))
    channel = CustomerSelectionChannel()
    await channel.set("x2")
    coordinator.attach(channel)
    assert coordinator.get_summary().customer_id == "X2"


@pytest.mark.asyncio
async def test_attach_is_idempotent_and_detach_unsubscribes(coordinator):
    channel = CustomerSelectionChannel()
    coordinator.attach(channel)
    coordinator.attach(channel)
    assert len(channel.event_bus.subscribers["customer.selected"]) == 1

    coordinator.detach()
    await coordinator.load(StaticTableSource(TABLE))
    await channel.set("x1")
    assert coordinator.get_summary() is None
