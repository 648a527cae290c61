"""Tests for IndicatorManager."""

import logging
import math

import pytest
from pydantic import ValidationError

from indicator_engine.services.indicators.events import ReentrantMutationError
from indicator_engine.services.indicators.manager import IndicatorManager
from indicator_engine.services.indicators.moving_averages import EMAIndicator, SMAIndicator
from indicator_engine.services.indicators.oscillators import MACDIndicator, RSIIndicator
from indicator_engine.services.indicators.volume import VolumeIndicator


@pytest.fixture
def manager():
    return IndicatorManager()


@pytest.fixture
def events(manager):
    """Record every manager notification as (event, indicator id)."""
    recorded = []
    manager.indicator_added.subscribe(lambda ind: recorded.append(("added", ind.id)))
    manager.indicator_removed.subscribe(lambda ind: recorded.append(("removed", ind.id)))
    manager.pane_added.subscribe(lambda ind: recorded.append(("pane_added", ind.id)))
    manager.pane_removed.subscribe(lambda ind: recorded.append(("pane_removed", ind.id)))
    return recorded


class TestAddRemove:
    def test_add_routes_by_kind(self, manager):
        sma = SMAIndicator()
        rsi = RSIIndicator()
        manager.add_indicator(rsi)
        manager.add_indicator(sma)

        assert manager.overlay_indicators == (sma,)
        assert manager.panel_indicators == (rsi,)
        assert manager.all_indicators == (sma, rsi)
        assert len(manager) == 2

    def test_kind_mismatch_rejected(self, manager):
        with pytest.raises(ValueError):
            manager.add_overlay_indicator(RSIIndicator())
        with pytest.raises(ValueError):
            manager.add_panel_indicator(SMAIndicator())
        assert len(manager) == 0

    def test_notifications(self, manager, events):
        sma = SMAIndicator()
        macd = MACDIndicator()
        manager.add_indicator(sma)
        manager.add_indicator(macd)
        manager.remove_indicator(sma.id)
        manager.remove_indicator(macd.id)

        assert events == [
            ("added", sma.id),
            ("added", macd.id),
            ("pane_added", macd.id),
            ("removed", sma.id),
            ("removed", macd.id),
            ("pane_removed", macd.id),
        ]

    def test_remove_destroys(self, manager, random_bars):
        sma = SMAIndicator()
        manager.set_data(random_bars)
        manager.add_indicator(sma)

        assert manager.remove_indicator(sma.id) is True
        assert sma.destroyed
        assert sma.data == []
        assert not manager.has_indicator(sma.id)

    def test_remove_unknown_is_noop(self, manager, events):
        manager.add_indicator(SMAIndicator())
        assert manager.remove_indicator("SMA_missing") is False
        assert len(manager) == 1
        assert [e for e, _ in events] == ["added"]

    def test_get_indicator(self, manager):
        rsi = RSIIndicator()
        manager.add_indicator(rsi)
        assert manager.get_indicator(rsi.id) is rsi
        assert manager.get_indicator("nope") is None


class TestData:
    def test_set_data_without_indicators(self, manager, random_bars):
        manager.set_data(random_bars)
        assert manager.source_data == random_bars

        ema = EMAIndicator()
        manager.add_indicator(ema)
        assert len(ema.data) == len(random_bars)

    def test_set_data_recalculates_all(self, manager, random_bars):
        sma = SMAIndicator()
        rsi = RSIIndicator()
        manager.add_indicator(sma)
        manager.add_indicator(rsi)
        assert sma.data == [] and rsi.data == []

        manager.set_data(random_bars)
        assert len(sma.data) == len(rsi.data) == len(random_bars)

    def test_empty_series(self, manager):
        manager.add_indicator(VolumeIndicator())
        manager.set_data([])
        assert manager.all_indicators[0].data == []

    def test_recalculate_indicator(self, manager, random_bars):
        manager.recalculate_indicator("unknown")

        sma = SMAIndicator()
        manager.add_indicator(sma)
        manager.recalculate_indicator(sma.id)
        assert sma.data == []

        manager.set_data(random_bars)
        sma.update_options(period=5)
        manager.recalculate_indicator(sma.id)
        assert not any(math.isnan(p.value) for p in sma.data[4:])


class TestSettings:
    def test_setting_change_recalculates(self, manager, random_bars):
        sma = SMAIndicator(period=20)
        manager.add_indicator(sma)
        manager.set_data(random_bars)
        before = sma.data[-1].value

        assert manager.set_indicator_setting(sma.id, "period", 5) is True
        assert sma.data[-1].value != before
        assert sma.name == "SMA (5)"

    def test_cosmetic_change_does_not_recalculate(self, manager, random_bars):
        sma = SMAIndicator()
        manager.add_indicator(sma)
        manager.set_data(random_bars)

        assert manager.set_indicator_setting(sma.id, "color", "#abcdef") is False

    def test_without_series(self, manager):
        rsi = RSIIndicator()
        manager.add_indicator(rsi)
        assert manager.set_indicator_setting(rsi.id, "period", 7) is False
        assert rsi.options.period == 7

    def test_unknown_indicator(self, manager):
        with pytest.raises(KeyError):
            manager.set_indicator_setting("missing", "period", 7)

    def test_invalid_value(self, manager):
        rsi = RSIIndicator()
        manager.add_indicator(rsi)
        with pytest.raises(ValidationError):
            manager.update_indicator_options(rsi.id, {"period": "fast"})


class TestReentrancy:
    def test_mutation_from_added_listener(self, manager):
        manager.indicator_added.subscribe(lambda ind: manager.remove_indicator(ind.id))
        with pytest.raises(ReentrantMutationError):
            manager.add_indicator(SMAIndicator())

    def test_mutation_from_removed_listener(self, manager, random_bars):
        sma = SMAIndicator()
        manager.add_indicator(sma)
        manager.indicator_removed.subscribe(lambda ind: manager.set_data(random_bars))
        with pytest.raises(ReentrantMutationError):
            manager.remove_indicator(sma.id)

    def test_guard_released_after_error(self, manager):
        def listener(ind):
            manager.clear()

        manager.indicator_added.subscribe(listener)
        with pytest.raises(ReentrantMutationError):
            manager.add_indicator(SMAIndicator())

        manager.indicator_added.unsubscribe(listener)
        manager.add_indicator(EMAIndicator())
        assert len(manager) == 2

    def test_data_changed_reentrancy(self, manager, random_bars):
        sma = SMAIndicator()
        manager.add_indicator(sma)
        sma.data_changed.subscribe(lambda ind: ind.set_data(random_bars))
        with pytest.raises(ReentrantMutationError):
            manager.set_data(random_bars)

    def test_removal_from_data_changed_during_set_data(self, manager, random_bars):
        sma = SMAIndicator()
        ema = EMAIndicator()
        manager.add_indicator(sma)
        manager.add_indicator(ema)
        sma.data_changed.subscribe(lambda ind: manager.remove_indicator(ema.id))

        with pytest.raises(ReentrantMutationError):
            manager.set_data(random_bars)

        assert manager.has_indicator(ema.id)
        assert not ema.destroyed

    def test_removal_from_data_changed_during_recalculate(self, manager, random_bars):
        sma = SMAIndicator()
        manager.add_indicator(sma)
        manager.set_data(random_bars)
        sma.data_changed.subscribe(lambda ind: manager.remove_indicator(ind.id))

        with pytest.raises(ReentrantMutationError):
            manager.recalculate_indicator(sma.id)
        with pytest.raises(ReentrantMutationError):
            manager.update_indicator_options(sma.id, {"period": 5})
        assert manager.has_indicator(sma.id)

    def test_set_data_allowed_after_data_changed_error(self, manager, random_bars):
        sma = SMAIndicator()
        manager.add_indicator(sma)

        def listener(ind):
            manager.clear()

        sma.data_changed.subscribe(listener)
        with pytest.raises(ReentrantMutationError):
            manager.set_data(random_bars)

        sma.data_changed.unsubscribe(listener)
        manager.set_data(random_bars)
        assert len(sma.data) == len(random_bars)

    def test_read_only_access_from_listener(self, manager):
        seen = []
        manager.indicator_added.subscribe(lambda ind: seen.append(manager.has_indicator(ind.id)))
        manager.add_indicator(SMAIndicator())
        assert seen == [True]


class TestClearDestroy:
    def test_clear_keeps_series(self, manager, random_bars, events):
        sma = SMAIndicator()
        rsi = RSIIndicator()
        manager.add_indicator(sma)
        manager.add_indicator(rsi)
        manager.set_data(random_bars)
        events.clear()

        manager.clear()

        assert len(manager) == 0
        assert manager.source_data == random_bars
        assert ("removed", sma.id) in events and ("pane_removed", rsi.id) in events

    def test_destroy(self, manager, random_bars, events):
        manager.add_indicator(SMAIndicator())
        manager.set_data(random_bars)

        manager.destroy()

        assert len(manager) == 0
        assert manager.source_data == []
        assert not manager.indicator_added.has_listeners()


class TestDeserializeSkips:
    def test_unknown_type_skipped(self, manager, caplog):
        records = [
            {"id": "Ichimoku_1", "kind": "overlay", "typeId": "Ichimoku", "name": "Ichimoku", "options": {}},
            {"id": "SMA_1", "kind": "overlay", "typeId": "SMA", "name": "SMA (20)", "options": {"period": 20}},
        ]
        with caplog.at_level(logging.WARNING):
            manager.deserialize(records)

        assert [i.id for i in manager.all_indicators] == ["SMA_1"]
        assert "Unknown indicator type: Ichimoku" in caplog.text

    def test_invalid_options_skipped(self, manager, caplog):
        records = [
            {"id": "RSI_1", "kind": "panel", "typeId": "RSI", "name": "RSI", "options": {"period": "abc"}},
            {"id": "RSI_2", "kind": "panel", "typeId": "RSI", "name": "RSI", "options": {"period": 9}},
        ]
        with caplog.at_level(logging.WARNING):
            manager.deserialize(records)

        assert [i.id for i in manager.all_indicators] == ["RSI_2"]
        assert "invalid options" in caplog.text

    def test_malformed_record_skipped(self, manager):
        manager.deserialize([{"typeId": "SMA"}])
        assert len(manager) == 0

    def test_deserialize_replaces_existing(self, manager):
        manager.add_indicator(EMAIndicator())
        manager.deserialize([])
        assert len(manager) == 0
