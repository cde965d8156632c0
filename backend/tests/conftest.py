import os

import aiosqlite
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Keep the developer's environment out of the tests
os.environ["CLINRECALL_ELEVENLABS_API_KEY"] = ""
os.environ["CLINRECALL_USE_MOCK_STT"] = "false"
os.environ["CLINRECALL_LLM_MODEL_ID"] = ""
os.environ["CLINRECALL_LLM_MODEL_PATH"] = ""

DAY_MS = 86_400_000
T0 = 1_700_000_000_000  # 2023-11-14T22:13:20Z


class FrozenClock:
    """Injected "now" for routers (epoch ms)."""

    def __init__(self, now: int = T0):
        self.now = now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    from clinrecall.config import settings

    monkeypatch.setattr(settings, "data_dir", tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_registries():
    from clinrecall.routers import speech
    from clinrecall.services import practice, study_session

    study_session._sessions.clear()
    practice._replays.clear()
    speech.stt_limiter.reset()
    yield
    study_session._sessions.clear()
    practice._replays.clear()


@pytest_asyncio.fixture
async def db(data_dir):
    from clinrecall.config import settings
    from clinrecall.db import init_all_databases

    await init_all_databases(data_dir)
    async with aiosqlite.connect(data_dir / settings.sqlite_filename) as conn:
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys=ON")
        yield conn


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def client(data_dir, clock):
    from clinrecall import app
    from clinrecall.services.clock import now_ms

    app.dependency_overrides[now_ms] = lambda: clock.now
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def case_payload():
    return {
        "transcript": "45-year-old male with sharp left chest pain for 3 days, worse with deep breathing.",
        "ai_draft": (
            "S (Subjective):\nChest pain for 3 days, pleuritic.\n"
            "O (Objective):\nBP 132/84, HR 88. Tender left chest wall.\n"
            "A (Assessment):\nCostochondritis, rule out pericarditis.\n"
            "P (Plan):\nNSAIDs, ECG, return if dyspnea.\n"
            "ICD-10: M94.0"
        ),
        "clinician_diagnosis": "Costochondritis",
        "clinician_plan": "Ibuprofen 400mg, ECG, return precautions",
    }
