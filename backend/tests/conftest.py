from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure `backend/` is on sys.path so `import govbid.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))


@pytest.fixture()
def store():
    from govbid.repositories.blob_store import InMemoryBlobStore

    return InMemoryBlobStore()


@pytest.fixture()
def opportunity():
    from govbid.modules.opportunities.schemas import Opportunity

    return Opportunity(
        id="abc123",
        title="Combat Boots, Desert",
        agency="DEPT OF DEFENSE",
        link="https://sam.gov/opp/abc123/view",
        closingDate="2025-03-01T17:00:00-05:00",
        resourceLinks=["https://sam.gov/api/prod/opps/v3/opportunities/resources/files/1/download"],
    )
