import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["OPENAI_API_KEY"] = ""
os.environ["MLFLOW_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient

from cost_assistant.db.session import build_engine, build_sessionmaker, get_db
from cost_assistant.models import Base
from cost_assistant.services.llm_service import get_llm_service
from main import create_application


class StubLLM:
    """Stands in for the LLM collaborator and records every call."""

    is_mock = False

    def __init__(self, reply="Move the batch jobs to spot instances.", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(
        self,
        messages,
        max_tokens=None,
        temperature=None,
        kind="chat",
        user_id="unknown",
    ):
        self.calls.append(
            {
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "kind": kind,
                "user_id": user_id,
            }
        )
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(messages)
        return self.reply

    def calls_of(self, kind):
        return [c for c in self.calls if c["kind"] == kind]


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    async with build_sessionmaker(engine)() as session:
        yield session


@pytest.fixture
def llm():
    return StubLLM()


@pytest.fixture
async def client(engine, llm):
    app = create_application()
    sessionmaker = build_sessionmaker(engine)

    async def override_get_db():
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm_service] = lambda: llm

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
