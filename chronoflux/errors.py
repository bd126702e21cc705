"""
Error taxonomy for ChronoFlux.

Domain errors stop a turn and are surfaced verbatim. Provider errors carry two
flags used by the turn pipeline:

- ``retryable``: the retry controller may call the provider again
- ``fatal``: the turn must abort instead of degrading to fallback content
"""

from typing import Optional


class ChronoFluxError(Exception):
    """Base class for all ChronoFlux errors"""

    code = "CHRONOFLUX_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ==================== Domain ====================


class GameNotFoundError(ChronoFluxError):
    code = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Game not found: {game_id}")


class ScenarioNotFoundError(ChronoFluxError):
    code = "SCENARIO_NOT_FOUND"

    def __init__(self, scenario_id: str):
        self.scenario_id = scenario_id
        super().__init__(f"Scenario not found: {scenario_id}")


class NationNotFoundError(ChronoFluxError):
    code = "NATION_NOT_FOUND"

    def __init__(self, nation_ref: str):
        self.nation_ref = nation_ref
        super().__init__(f"Nation not found: {nation_ref}")


class RelationshipNotFoundError(ChronoFluxError):
    code = "RELATIONSHIP_NOT_FOUND"

    def __init__(self, nation1_id: str, nation2_id: str):
        super().__init__(
            f"Relationship not found between {nation1_id} and {nation2_id}"
        )


class PlayerNationUnsetError(ChronoFluxError):
    code = "PLAYER_NATION_UNSET"

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Player nation not set for game {game_id}")


class ScenarioProtectedError(ChronoFluxError):
    code = "SCENARIO_PROTECTED"

    def __init__(self):
        super().__init__("Cannot delete pre-defined scenarios")


class ScenarioInUseError(ChronoFluxError):
    code = "SCENARIO_IN_USE"

    def __init__(self):
        super().__init__(
            "Cannot delete scenario that is being used in active or paused games"
        )


class ConcurrentTurnConflictError(ChronoFluxError):
    """The game's turn counter moved while this turn was being resolved"""

    code = "TURN_CONFLICT"

    def __init__(self, game_id: str, expected_turn: int, actual_turn: Optional[int]):
        self.game_id = game_id
        self.expected_turn = expected_turn
        self.actual_turn = actual_turn
        super().__init__(
            "Game state changed during turn submission. Please retry. "
            f"(expected turn {expected_turn}, found {actual_turn})"
        )


# ==================== AI provider ====================


class AIProviderError(ChronoFluxError):
    """Generic provider failure"""

    code = "PROVIDER_ERROR"
    retryable = True
    fatal = False

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        retryable: Optional[bool] = None,
    ):
        self.provider = provider
        self.status_code = status_code
        if retryable is not None:
            self.retryable = retryable
        super().__init__(message)


# Alias matching the gateway contract name
ProviderError = AIProviderError


class ProviderTimeoutError(AIProviderError):
    code = "PROVIDER_TIMEOUT"
    retryable = True


class ConnectivityError(AIProviderError):
    """Provider host unreachable; the user has to fix their setup"""

    code = "PROVIDER_UNREACHABLE"
    retryable = False
    fatal = True


class ConfigurationError(ConnectivityError):
    """Provider misconfigured (missing API key, unknown provider)"""

    code = "PROVIDER_MISCONFIGURED"


class AuthError(AIProviderError):
    code = "PROVIDER_AUTH"
    retryable = False
    fatal = True


class QuotaError(AIProviderError):
    code = "PROVIDER_QUOTA"
    retryable = False
    fatal = True


class RateLimitError(QuotaError):
    code = "PROVIDER_RATE_LIMIT"


# ==================== LLM output parsing ====================


class JsonExtractionError(ChronoFluxError):
    """LLM output could not be turned into the expected structure"""

    code = "PARSE_ERROR"
    retryable = True
    fatal = False


class NoJsonFoundError(JsonExtractionError):
    def __init__(self, message: str = "No valid JSON found in AI response"):
        super().__init__(message)


class ResponseShapeError(JsonExtractionError):
    code = "SHAPE_ERROR"


def is_fatal(error: BaseException) -> bool:
    """True when an error must abort the turn instead of using fallback content"""
    return bool(getattr(error, "fatal", False))


def is_retryable(error: BaseException) -> bool:
    """Errors without an explicit flag (unexpected exceptions) are retried"""
    return bool(getattr(error, "retryable", True))
