"""Wearable reading sources.

Readings are advisory context for prescription drift analysis only.
``WearableReadingSource`` is the capability the rest of the app depends on;
``SimulatedWearableSource`` plays back a small vitals series so the flow
works without hardware. A real BLE backend would implement the same four
methods.
"""

import abc
import csv
import logging
from pathlib import Path

from carevault.config import WEARABLE_DEMO_DATA_PATH
from carevault.database import to_timestamp, utcnow
from carevault.models.medication import WearableReading

logger = logging.getLogger(__name__)

_FALLBACK_SERIES = [
    {"hr": 72.0, "spo2": 98.0, "temp": 36.7},
    {"hr": 88.0, "spo2": 97.0, "temp": 36.9},
    {"hr": 104.0, "spo2": 95.0, "temp": 37.6},
]


def classify_heart_rate(bpm: float) -> str:
    if bpm > 100:
        return "elevated"
    if bpm < 50:
        return "low"
    return "normal"


def classify_temperature(celsius: float) -> str:
    if celsius > 37.5:
        return "elevated"
    if celsius < 35.5:
        return "low"
    return "normal"


def classify_spo2(percent: float) -> str:
    return "low" if percent < 92 else "normal"


def load_demo_vitals(path: str | Path = WEARABLE_DEMO_DATA_PATH) -> list[dict]:
    """Load a small vitals series for simulated playback."""
    data_path = Path(path)
    if not data_path.exists():
        return []

    series: list[dict] = []
    with data_path.open("r", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            try:
                hr = float(row.get("HR", ""))
                spo2 = float(row.get("SpO2", ""))
                temp = float(row.get("TEMP", ""))
            except ValueError:
                continue
            series.append({"hr": hr, "spo2": spo2, "temp": temp})

    return series


class WearableReadingSource(abc.ABC):
    @abc.abstractmethod
    async def scan(self) -> list[str]:
        """Return identifiers of devices in range."""

    @abc.abstractmethod
    async def connect(self, device_id: str) -> bool:
        ...

    @abc.abstractmethod
    async def read(self) -> list[WearableReading]:
        ...

    @abc.abstractmethod
    async def disconnect(self) -> None:
        ...

    @property
    @abc.abstractmethod
    def connected(self) -> bool:
        ...


class SimulatedWearableSource(WearableReadingSource):
    device_id = "simulated-band"

    def __init__(self, series: list[dict] | None = None):
        self.series = series if series is not None else (load_demo_vitals() or list(_FALLBACK_SERIES))
        self.idx = 0
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def scan(self) -> list[str]:
        return [self.device_id]

    async def connect(self, device_id: str) -> bool:
        self._connected = device_id == self.device_id
        return self._connected

    async def read(self) -> list[WearableReading]:
        if not self._connected or not self.series:
            return []
        sample = self.series[self.idx]
        self.idx = (self.idx + 1) % len(self.series)
        now = to_timestamp(utcnow())
        return [
            WearableReading(
                type="heart_rate",
                label="Heart Rate",
                value=str(int(sample["hr"])),
                unit="bpm",
                timestamp=now,
                status=classify_heart_rate(sample["hr"]),
            ),
            WearableReading(
                type="spo2",
                label="SpO2",
                value=str(int(sample["spo2"])),
                unit="%",
                timestamp=now,
                status=classify_spo2(sample["spo2"]),
            ),
            WearableReading(
                type="temperature",
                label="Body Temp",
                value=f"{sample['temp']:.1f}",
                unit="°C",
                timestamp=now,
                status=classify_temperature(sample["temp"]),
            ),
        ]

    async def disconnect(self) -> None:
        self._connected = False


class WearableRegistry:
    """Per-patient source plus the latest readings it produced."""

    def __init__(self, factory=SimulatedWearableSource) -> None:
        self._factory = factory
        self._sources: dict[str, WearableReadingSource] = {}
        self._latest: dict[str, list[WearableReading]] = {}

    def source_for(self, patient_id: str) -> WearableReadingSource:
        if patient_id not in self._sources:
            self._sources[patient_id] = self._factory()
        return self._sources[patient_id]

    async def connect(self, patient_id: str) -> bool:
        source = self.source_for(patient_id)
        devices = await source.scan()
        if not devices:
            logger.info("No wearable devices found for %s", patient_id)
            return False
        ok = await source.connect(devices[0])
        logger.info("Wearable connect for %s: %s", patient_id, "ok" if ok else "failed")
        return ok

    async def sync(self, patient_id: str) -> list[WearableReading]:
        source = self.source_for(patient_id)
        readings = await source.read()
        if readings:
            self._latest[patient_id] = readings
        return self._latest.get(patient_id, [])

    async def disconnect(self, patient_id: str) -> None:
        source = self._sources.pop(patient_id, None)
        if source is not None:
            await source.disconnect()
        self._latest.pop(patient_id, None)

    def latest(self, patient_id: str) -> list[WearableReading]:
        return list(self._latest.get(patient_id, []))

    def reset(self) -> None:
        self._sources.clear()
        self._latest.clear()


wearables = WearableRegistry()
