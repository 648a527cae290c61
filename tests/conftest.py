import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from indicator_engine.schemas.bars import Bar
from indicator_engine.services.state import close_chart_sessions
from indicator_engine.services.storage import redis_client


def build_bars(closes, start: int = 1_700_000_000, step: int = 60, volume: float = 1_000.0) -> list[Bar]:
    """Bars whose open is the previous close and whose high/low wrap the body."""
    bars = []
    prev = closes[0]
    for i, close in enumerate(closes):
        close = float(close)
        open_ = float(prev)
        bars.append(
            Bar(
                time=start + i * step,
                open=open_,
                high=max(open_, close) + 0.5,
                low=min(open_, close) - 0.5,
                close=close,
                volume=volume + i,
            )
        )
        prev = close
    return bars


@pytest.fixture
def make_bars():
    """Factory fixture: make_bars(closes) -> list[Bar]."""
    return build_bars


@pytest.fixture
def random_bars():
    """200 bars of a seeded random walk."""
    rng = np.random.default_rng(42)
    closes = 100 + np.cumsum(rng.normal(0, 1.5, 200))
    return build_bars(closes.tolist())


@pytest.fixture
def flat_bars():
    """30 bars with every price at 100."""
    return [
        Bar(time=1_700_000_000 + i * 60, open=100, high=100, low=100, close=100, volume=500)
        for i in range(30)
    ]


@pytest.fixture
def rising_bars():
    """60 bars with strictly increasing closes."""
    return build_bars([100 + i for i in range(60)])


@pytest.fixture
def fresh_sessions(monkeypatch):
    """Isolated chart sessions backed by a new in-memory store."""
    close_chart_sessions()
    monkeypatch.setattr(redis_client, "_storage_adapter", None)
    yield
    close_chart_sessions()


@pytest_asyncio.fixture
async def client(fresh_sessions):
    """HTTP client against the application."""
    from indicator_engine.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
