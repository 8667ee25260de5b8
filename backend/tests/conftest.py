import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from bracket_engine.models.event import EventMode
from bracket_engine.models.match import Match
from bracket_engine.services.event_service import EventCreate, TeamCreate, add_team, create_event

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. All models MUST be imported before create_all() (see session_fixture)
# 3. Tables are dropped after every test so ids and constraints start clean
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from bracket_engine.models.event import Event  # noqa: F401
    from bracket_engine.models.event_log import EventLogEntry  # noqa: F401
    from bracket_engine.models.match import Match  # noqa: F401
    from bracket_engine.models.round import Round  # noqa: F401
    from bracket_engine.models.team import Team  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def make_event(session: Session):
    """Factory: event of the given mode with teams seeded 1..team_count.

    Returns (event, teams) where teams[i] holds seed i + 1.
    """

    def _make(
        mode: EventMode,
        team_count: int,
        table_count: int = 1,
        group_count=None,
        teams_advance_per_group=None,
        knockout_mode=None,
    ):
        event = create_event(
            session,
            EventCreate(
                name=f"{mode.value} x{team_count}",
                mode=mode,
                table_count=table_count,
                group_count=group_count,
                teams_advance_per_group=teams_advance_per_group,
                knockout_mode=knockout_mode,
            ),
        )
        teams = [
            add_team(session, event.id, TeamCreate(name=f"Team {seed}", seed=seed))
            for seed in range(1, team_count + 1)
        ]
        return event, teams

    return _make


@pytest.fixture
def by_position(session: Session):
    """Lookup: bracket_position -> Match for an event, freshly loaded."""

    def _lookup(event_id: int):
        session.expire_all()
        matches = session.exec(select(Match).where(Match.event_id == event_id)).all()
        return {m.bracket_position: m for m in matches}

    return _lookup
