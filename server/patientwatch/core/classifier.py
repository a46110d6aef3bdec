"""Severity classification of a vitals snapshot.

Each signal is checked against its own thresholds and the overall level is
the worst one seen. Pure functions, no state.
"""

from __future__ import annotations

from patientwatch.core.models import SEVERITY_ORDER, Classification, Severity, Vitals

SPO2_CRITICAL_BELOW = 85
SPO2_WARNING_BELOW = 90

HR_CRITICAL_LOW = 40
HR_CRITICAL_HIGH = 140
HR_WARNING_LOW = 50
HR_WARNING_HIGH = 120

TEMP_CRITICAL_AT = 40.0
TEMP_WARNING_AT = 38.5


def max_severity(a: Severity, b: Severity) -> Severity:
    return b if SEVERITY_ORDER[b] > SEVERITY_ORDER[a] else a


def classify(vitals: Vitals) -> Classification:
    """Return the severity level of ``vitals`` and the reasons behind it.

    Reasons are listed in evaluation order: SpO2, heart rate, body
    temperature, fall.
    """
    level: Severity = "normal"
    reasons: list[str] = []

    if vitals.spo2 < SPO2_CRITICAL_BELOW:
        level = "critical"
        reasons.append(f"SpO2 {vitals.spo2}%")
    elif vitals.spo2 < SPO2_WARNING_BELOW:
        level = max_severity(level, "warning")
        reasons.append(f"SpO2 {vitals.spo2}%")

    hr = vitals.heart_rate
    if hr < HR_CRITICAL_LOW or hr > HR_CRITICAL_HIGH:
        level = "critical"
        reasons.append(f"HR {hr}")
    elif hr < HR_WARNING_LOW or hr > HR_WARNING_HIGH:
        level = max_severity(level, "warning")
        reasons.append(f"HR {hr}")

    if vitals.body_temp >= TEMP_CRITICAL_AT:
        level = "critical"
        reasons.append(f"Temp {vitals.body_temp:.1f}°C")
    elif vitals.body_temp >= TEMP_WARNING_AT:
        level = max_severity(level, "warning")
        reasons.append(f"Temp {vitals.body_temp:.1f}°C")

    if vitals.fall_detected:
        level = "critical"
        reasons.append("Fall")

    return Classification(level=level, reasons=tuple(reasons))
