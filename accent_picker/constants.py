# accent_picker/constants.py
"""
Default tunables for accent extraction.

- Sampling / weighting defaults (DEFAULT_*)
- Registry bounds (MAX_PERMITTED_COLOURS, MAX_GROUP_MEMBERS)
- Shared pool sizing (POOL_*)
"""
from __future__ import annotations

import os

# =========================
# Extraction defaults
# =========================
DEFAULT_ACCURACY: int = 3  # sample every Nth pixel in both axes
DEFAULT_VERTICAL_BORDER_DIVISOR: int = 16  # vertical borders are width / N wide
DEFAULT_HORIZONTAL_BORDER_DIVISOR: int = 16  # horizontal borders are height / N tall
DEFAULT_MIN_MERGE_DISTANCE: float = 20.0  # CIEDE2000 units

# =========================
# Registry bounds
# =========================
MAX_PERMITTED_COLOURS: int = 32  # colour groups kept per worker
MAX_GROUP_MEMBERS: int = 4  # exact colours kept per group

# =========================
# Shared async pool
# =========================
CPU_COUNT: int = os.cpu_count() or 1
POOL_CORE_SIZE: int = max(2, min(CPU_COUNT - 1, 4))
POOL_MAX_SIZE: int = CPU_COUNT * 2 + 1
POOL_THREAD_PREFIX: str = "accent-picker"
