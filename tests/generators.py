import random
from datetime import datetime, timedelta

from solar_engine_pro.types import FIFTEEN_MIN, MeterReading


def build_timestamps(n, start=None, dt=0.25):
    start = start or datetime(2025, 1, 1)
    return [start + timedelta(hours=dt * i) for i in range(n)]


def readings_at(points, granularity=FIFTEEN_MIN):
    """[(datetime, kW), ...] → MeterReadings."""
    return [
        MeterReading(timestamp=ts, kwh=kw * 0.25, kw=kw, granularity=granularity)
        for ts, kw in points
    ]


def random_readings(n=2000, low=0.0, high=400.0, seed=1, dt=4.0):
    rng = random.Random(seed)
    timestamps = build_timestamps(n, dt=dt)
    return readings_at([(ts, rng.uniform(low, high)) for ts in timestamps])
