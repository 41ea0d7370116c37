"""Tests for wearable reading sources."""

from carevault.services.wearables import (
    SimulatedWearableSource,
    WearableRegistry,
    classify_heart_rate,
    classify_spo2,
    classify_temperature,
    load_demo_vitals,
)

SERIES = [
    {"hr": 72.0, "spo2": 98.0, "temp": 36.6},
    {"hr": 118.0, "spo2": 90.0, "temp": 38.1},
]


class TestClassifiers:
    def test_heart_rate(self):
        assert classify_heart_rate(101) == "elevated"
        assert classify_heart_rate(100) == "normal"
        assert classify_heart_rate(49) == "low"

    def test_temperature(self):
        assert classify_temperature(37.6) == "elevated"
        assert classify_temperature(36.8) == "normal"
        assert classify_temperature(35.0) == "low"

    def test_spo2(self):
        assert classify_spo2(91) == "low"
        assert classify_spo2(95) == "normal"


class TestDemoVitals:
    def test_bundled_series_loads(self):
        series = load_demo_vitals()
        assert series
        assert set(series[0]) == {"hr", "spo2", "temp"}

    def test_missing_file(self, tmp_path):
        assert load_demo_vitals(tmp_path / "missing.csv") == []

    def test_skips_bad_rows(self, tmp_path):
        path = tmp_path / "vitals.csv"
        path.write_text("HR,SpO2,TEMP\n70,98,36.5\n,97,36.6\nabc,1,2\n")
        assert load_demo_vitals(path) == [{"hr": 70.0, "spo2": 98.0, "temp": 36.5}]


class TestSimulatedSource:
    async def test_read_requires_connection(self):
        source = SimulatedWearableSource(SERIES)
        assert await source.read() == []
        assert await source.connect("unknown-device") is False

    async def test_cycles_series(self):
        source = SimulatedWearableSource(SERIES)
        devices = await source.scan()
        assert await source.connect(devices[0])
        first = await source.read()
        second = await source.read()
        third = await source.read()
        assert [r.status for r in first] == ["normal", "normal", "normal"]
        assert [r.status for r in second] == ["elevated", "low", "elevated"]
        assert [r.value for r in third] == [r.value for r in first]

    async def test_disconnect(self):
        source = SimulatedWearableSource(SERIES)
        await source.connect(source.device_id)
        await source.disconnect()
        assert source.connected is False
        assert await source.read() == []


class TestRegistry:
    async def test_connect_sync_disconnect(self):
        registry = WearableRegistry(lambda: SimulatedWearableSource(SERIES))
        assert registry.latest("p1") == []
        assert await registry.connect("p1")
        readings = await registry.sync("p1")
        assert {r.type for r in readings} == {"heart_rate", "spo2", "temperature"}
        assert registry.latest("p1") == readings
        assert registry.latest("p2") == []

        await registry.disconnect("p1")
        assert registry.latest("p1") == []

    async def test_sync_without_connection_keeps_last(self):
        registry = WearableRegistry(lambda: SimulatedWearableSource(SERIES))
        assert await registry.sync("p1") == []
