# tests/conftest.py
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from oracleview.config import ChartConfig
from oracleview.engine import ChartEngine
from oracleview.events import EventDispatcher
from oracleview.frames import ManualFrameClock


def _raw_update(feed_id, price, publish_time, expo=-8, conf="5000000", ema=None):
    """Build a feed payload in the oracle's JSON shape.

    *price* is a float in whole units and is converted to a mantissa.
    """
    mantissa = str(round(price * 10 ** -expo))
    raw = {
        "id": feed_id,
        "price": {
            "price": mantissa,
            "conf": conf,
            "expo": expo,
            "publish_time": publish_time,
        },
        "metadata": {
            "slot": 1000 + publish_time,
            "prev_publish_time": publish_time - 1,
            "proof_available_time": publish_time + 1,
        },
    }
    if ema is not None:
        raw["ema_price"] = {
            "price": str(round(ema * 10 ** -expo)),
            "conf": conf,
            "expo": expo,
            "publish_time": publish_time,
        }
    return raw


@pytest.fixture
def make_update():
    """Factory for raw feed payloads: make_update(feed_id, price, publish_time, ...)."""
    return _raw_update


@pytest.fixture
def clock():
    return ManualFrameClock()


@pytest.fixture
def dispatcher():
    return EventDispatcher()


@pytest.fixture
def config():
    return ChartConfig()


@pytest.fixture
def engine(config, clock, dispatcher):
    eng = ChartEngine(config, clock=clock, dispatcher=dispatcher)
    yield eng
    eng.close()
