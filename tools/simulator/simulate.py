#!/usr/bin/env python3
"""PatientWatch bedside monitor simulator.

Generates device telemetry traffic for testing the ingestion endpoint.

Usage:
    # 5 monitors around Nairobi for 10 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --devices 5 --duration 600

    # Stress test: 50 monitors, one reading per second each
    python -m tools.simulator.simulate --server http://localhost:8000 --devices 50 --readings-per-minute 60

    # Make roughly one monitor in five report deteriorating vitals
    python -m tools.simulator.simulate --server http://localhost:8000 --deteriorate 0.2
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
import uuid
from dataclasses import dataclass

import httpx


@dataclass
class SimMonitor:
    device_id: str
    patient_id: str
    lat: float
    lng: float
    heart_rate: float
    spo2: float
    body_temp: float
    deteriorating: bool = False
    readings_sent: int = 0
    errors: int = 0


def drift_vitals(monitor: SimMonitor) -> None:
    """Random walk of the monitor's vitals; deteriorating patients trend worse."""
    bias = 1.0 if monitor.deteriorating else 0.0
    monitor.heart_rate = max(30.0, min(180.0, monitor.heart_rate + random.uniform(-3, 3) + bias))
    monitor.spo2 = max(70.0, min(100.0, monitor.spo2 + random.uniform(-1, 1) - 0.5 * bias))
    monitor.body_temp = max(34.5, min(42.0, monitor.body_temp + random.uniform(-0.1, 0.1) + 0.05 * bias))


def make_reading_payload(monitor: SimMonitor) -> dict:
    """Create a single telemetry JSON payload."""
    return {
        "device_id": monitor.device_id,
        "display_name": f"Bed {monitor.patient_id}",
        "lat": round(monitor.lat, 6),
        "lng": round(monitor.lng, 6),
        "vitals": {
            "heart_rate": int(round(monitor.heart_rate)),
            "spo2": int(round(monitor.spo2)),
            "body_temp": round(monitor.body_temp, 1),
            "room_temp": round(random.uniform(21.0, 26.0), 1),
            "room_humidity": random.randint(40, 60),
            "ecg": round(random.uniform(0.05, 0.2), 2),
            "fall_detected": random.random() < 0.005,
        },
    }


async def run_monitor(
    client: httpx.AsyncClient,
    monitor: SimMonitor,
    server_url: str,
    readings_per_minute: float,
    duration_seconds: float,
) -> None:
    """Simulate a single monitor sending readings."""
    interval = 60.0 / readings_per_minute
    end_time = time.monotonic() + duration_seconds

    while time.monotonic() < end_time:
        drift_vitals(monitor)
        payload = make_reading_payload(monitor)

        try:
            resp = await client.post(
                f"{server_url}/api/v1/patients/{monitor.patient_id}/telemetry",
                content=json.dumps(payload),
                headers={"content-type": "application/json"},
            )
            if resp.status_code == 200:
                monitor.readings_sent += 1
            else:
                monitor.errors += 1
        except httpx.RequestError:
            monitor.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lng = args.center
    monitors = []
    for i in range(args.devices):
        # Scatter patients within radius of center
        angle = random.uniform(0, 2 * math.pi)
        dist_km = random.uniform(0, args.radius_km)
        lat = center_lat + (dist_km / 111.0) * math.cos(angle)
        lng = center_lng + (dist_km / (111.0 * math.cos(math.radians(center_lat)))) * math.sin(angle)

        monitors.append(SimMonitor(
            device_id=str(uuid.uuid4()),
            patient_id=f"sim-{i:03d}",
            lat=lat,
            lng=lng,
            heart_rate=random.uniform(60, 90),
            spo2=random.uniform(94, 99),
            body_temp=random.uniform(36.4, 37.2),
            deteriorating=random.random() < args.deteriorate,
        ))

    print(f"Starting simulation: {args.devices} monitors, {args.readings_per_minute} readings/min each")
    print(f"  Center: {center_lat:.4f}, {center_lng:.4f}")
    print(f"  Radius: {args.radius_km} km")
    print(f"  Duration: {args.duration}s")
    print(f"  Deteriorating: {sum(m.deteriorating for m in monitors)}")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [
            run_monitor(client, m, args.server, args.readings_per_minute, args.duration)
            for m in monitors
        ]
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        total_readings = sum(m.readings_sent for m in monitors)
        total_errors = sum(m.errors for m in monitors)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Total readings sent: {total_readings}")
        print(f"  Total errors: {total_errors}")
        print(f"  Throughput: {total_readings / elapsed:.1f} readings/sec")

        # Check server status
        try:
            resp = await client.get(f"{args.server}/api/v1/patients")
            if resp.status_code == 200:
                patients = resp.json()["patients"]
                counts = {"normal": 0, "warning": 0, "critical": 0}
                for p in patients:
                    counts[p["status"]] = counts.get(p["status"], 0) + 1
                print("\nServer patients:")
                for status, n in counts.items():
                    print(f"  {status}: {n}")
        except httpx.HTTPError as e:
            print(f"\nCould not fetch patients: {e}")


def main():
    parser = argparse.ArgumentParser(description="PatientWatch bedside monitor simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--devices", type=int, default=5, help="Number of simulated monitors")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--readings-per-minute", type=float, default=6,
                        help="Readings per minute per monitor")
    parser.add_argument("--center", type=str, default="-1.2921,36.8219",
                        help="Center lat,lng (default: Nairobi)")
    parser.add_argument("--radius-km", type=float, default=5.0, help="Scatter radius in km")
    parser.add_argument("--deteriorate", type=float, default=0.0,
                        help="Fraction of monitors whose vitals trend worse (0-1)")

    args = parser.parse_args()

    # Parse center
    lat, lng = args.center.split(",")
    args.center = (float(lat), float(lng))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
