"""
Lightweight error-handling helpers for FPL -> Sleeper matching and scoring.

* ``get_logger(name)``: returns a stdlib logger that writes to stderr
  (visible in the terminal / container logs).
* ``FplSleeperError`` and subclasses: the only exceptions this package raises
  on purpose.  Ordinary data sparsity never raises; see ``log_fallback``.

NOTE: only two situations are hard failures: a missing current period
(everything downstream depends on knowing "now") and a broken exclusivity
invariant in a match set (a resolver bug).
"""

import logging


def get_logger(name: str = "fpl_sleeper") -> logging.Logger:
    """Package-wide logger with a StreamHandler (visible in terminal / container logs)."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


class FplSleeperError(Exception):
    """Base class for errors raised by this package."""


class MissingPeriodError(FplSleeperError, ValueError):
    """The period context is missing or has no usable current period number."""


class MatchInvariantError(FplSleeperError, AssertionError):
    """A projection record was claimed by more than one roster record."""


def log_fallback(
    context: str,
    player: str = None,
    *,
    exception: Exception = None,
    logger: logging.Logger = None,
) -> None:
    """Log a non-fatal sub-calculation failure that was replaced by a placeholder.

    Parameters
    ----------
    context : str
        A short phrase describing what was being computed, e.g.
        ``"matchup classification"``.
    player : str, optional
        Display name of the player being processed.
    exception : Exception, optional
        If provided, logged with its traceback at WARNING level.
    logger : logging.Logger, optional
        Defaults to the package logger.
    """
    log = logger or get_logger()
    who = f" for {player}" if player else ""
    if exception is not None:
        log.warning("%s failed%s, using placeholder: %s", context, who, exception, exc_info=exception)
    else:
        log.warning("%s unavailable%s, using placeholder", context, who)
