# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from bracket_engine.models.event import Event  # noqa: F401
from bracket_engine.models.event_log import EventLogEntry  # noqa: F401
from bracket_engine.models.match import Match  # noqa: F401
from bracket_engine.models.round import Round  # noqa: F401
from bracket_engine.models.team import Team  # noqa: F401
