from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from agentbridge.core.adapters.projector import ProjectionDefaults, ResponseProjector  # noqa: E402

FIXED_CREATED = 1_700_000_000


@pytest.fixture
def projector() -> ResponseProjector:
    """Projector with a frozen clock so ``created`` is deterministic."""

    return ResponseProjector(ProjectionDefaults(clock=lambda: FIXED_CREATED + 0.75))
