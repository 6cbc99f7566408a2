"""Application-wide constants for the quorum availability core."""

from __future__ import annotations

from datetime import date

# Day geometry
MINUTES_PER_DAY = 24 * 60  # 1440
SLOT_DURATION_MINUTES = 30
SLOTS_PER_DAY = MINUTES_PER_DAY // SLOT_DURATION_MINUTES  # 48

# "24:00" is only ever valid as an end time and means end of the same day
END_OF_DAY = "24:00"
MIDNIGHT = "00:00"

UTC = "UTC"

# Fixed reference week for day-of-week arithmetic (Jan 7-13, 2024, Sunday first)
REFERENCE_SUNDAY = date(2024, 1, 7)

HEATMAP_KEY_SEPARATOR = "|"

# Text constraints
MAX_REASON_LENGTH = 255
