"""Tests for per-symbol chart state persistence."""

import asyncio
import json
import logging

import pytest

from indicator_engine.schemas.indicators import ChartState
from indicator_engine.services.indicators.manager import IndicatorManager
from indicator_engine.services.indicators.moving_averages import EMAIndicator
from indicator_engine.services.indicators.oscillators import RSIIndicator
from indicator_engine.services.state import ChartStateManager, get_chart_session
from indicator_engine.services.storage import MemoryStorageAdapter


@pytest.fixture
def storage():
    return MemoryStorageAdapter()


@pytest.fixture
def manager():
    return IndicatorManager()


@pytest.fixture
def chart_state(manager, storage):
    return ChartStateManager(manager, storage)


class TestSaveLoad:
    async def test_no_symbol_is_noop(self, chart_state, storage):
        assert await chart_state.save_state() is None
        assert await chart_state.load_state() is False
        assert await storage.keys() == []

    async def test_save_and_reload(self, chart_state, manager, storage):
        await chart_state.set_symbol("AAPL")
        rsi = RSIIndicator(period=10)
        manager.add_indicator(rsi)

        state = await chart_state.save_state()
        assert state.symbol == "AAPL"
        assert state.version == 1

        stored = json.loads(await storage.load("AAPL"))
        assert stored["savedAt"] > 0
        assert stored["indicators"][0]["typeId"] == "RSI"

        manager.clear()
        assert await chart_state.load_state() is True
        assert manager.get_indicator(rsi.id).options.period == 10

    async def test_switching_symbols(self, chart_state, manager):
        await chart_state.set_symbol("AAPL")
        ema = EMAIndicator()
        manager.add_indicator(ema)

        await chart_state.set_symbol("MSFT")
        assert len(manager) == 0
        assert chart_state.current_symbol == "MSFT"

        await chart_state.set_symbol("AAPL")
        assert [i.id for i in manager.all_indicators] == [ema.id]

    async def test_missing_state_clears(self, chart_state, manager):
        manager.add_indicator(EMAIndicator())
        await chart_state.set_symbol("TSLA")
        assert len(manager) == 0

    async def test_corrupt_state_clears(self, chart_state, manager, storage, caplog):
        await storage.save("AAPL", "{not json")
        manager.add_indicator(EMAIndicator())

        await chart_state.set_symbol("AAPL")

        assert len(manager) == 0
        assert "Failed to parse saved chart state" in caplog.text

    async def test_version_mismatch_still_loads(self, chart_state, manager, storage, caplog):
        state = ChartState(symbol="AAPL", indicators=[RSIIndicator().to_record()], saved_at=1, version=0)
        await storage.save("AAPL", state.model_dump_json(by_alias=True))

        with caplog.at_level(logging.WARNING):
            await chart_state.set_symbol("AAPL")

        assert len(manager) == 1
        assert "Migrating state from version 0" in caplog.text


class TestStateQueries:
    async def test_has_and_delete(self, chart_state, storage):
        assert await chart_state.has_state() is False
        await chart_state.set_symbol("AAPL")
        await chart_state.save_state()

        assert await chart_state.has_state() is True
        assert await chart_state.has_state("MSFT") is False
        assert await chart_state.get_saved_symbols() == ["AAPL"]

        await chart_state.delete_state()
        assert await chart_state.has_state("AAPL") is False

    async def test_export(self, chart_state):
        assert await chart_state.export_state() is None
        await chart_state.set_symbol("AAPL")
        await chart_state.save_state()

        exported = await chart_state.export_state()
        assert json.loads(exported)["symbol"] == "AAPL"


class TestImport:
    async def test_import_for_current_symbol_reloads(self, chart_state, manager):
        await chart_state.set_symbol("AAPL")
        rsi = RSIIndicator()
        blob = ChartState(symbol="AAPL", indicators=[rsi.to_record()], saved_at=1).model_dump_json(by_alias=True)

        assert await chart_state.import_state(blob) is True
        assert manager.has_indicator(rsi.id)

    async def test_import_for_other_symbol(self, chart_state, manager, storage):
        await chart_state.set_symbol("AAPL")
        blob = ChartState(symbol="MSFT", indicators=[], saved_at=1).model_dump_json(by_alias=True)

        assert await chart_state.import_state(blob, "MSFT") is True
        assert await storage.load("MSFT") == blob

    @pytest.mark.parametrize("blob", ["not json", "[]", '{"symbol": "AAPL"}', '{"indicators": "x"}'])
    async def test_invalid_import_rejected(self, chart_state, storage, blob):
        await chart_state.set_symbol("AAPL")
        assert await chart_state.import_state(blob) is False
        assert await storage.load("AAPL") is None

    async def test_import_without_symbol(self, chart_state):
        assert await chart_state.import_state("{}") is False


class SlowStorage(MemoryStorageAdapter):
    """Memory store whose loads yield to the event loop."""

    async def load(self, key):
        await asyncio.sleep(0)
        return await super().load(key)


class TestChartSessions:
    async def test_same_symbol_returns_same_session(self, fresh_sessions):
        storage = MemoryStorageAdapter()
        first = await get_chart_session("aapl", storage)
        second = await get_chart_session(" AAPL ", storage)

        assert first is second
        assert first.symbol == "AAPL"

    async def test_concurrent_open_shares_one_session(self, fresh_sessions):
        storage = SlowStorage()
        a, b = await asyncio.gather(
            get_chart_session("AAPL", storage),
            get_chart_session("AAPL", storage),
        )

        assert a is b
        assert a.indicators is b.indicators

    async def test_session_restores_saved_indicators(self, fresh_sessions):
        storage = SlowStorage()
        rsi = RSIIndicator()
        blob = ChartState(symbol="AAPL", indicators=[rsi.to_record()], saved_at=1).model_dump_json(by_alias=True)
        await storage.save("AAPL", blob)

        session = await get_chart_session("AAPL", storage)
        assert session.indicators.has_indicator(rsi.id)
