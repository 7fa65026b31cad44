class BattleError(Exception):
    """Base class for combat engine errors."""


class BattleConfigError(BattleError, ValueError):
    """Battle setup was rejected before any turn ran."""


class InvariantViolation(BattleError, RuntimeError):
    """A droid left its legal health or position range; this is an engine bug."""


class BattleResolvedError(BattleError):
    """An action was submitted to a battle that has already ended."""
