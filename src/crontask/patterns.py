"""Cron expression parsing and due-ness evaluation.

Public types:
- TemporalPattern: A parsed, immutable cron expression
- PatternCache: Per-scheduler memo of parsed patterns keyed by text
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from croniter import croniter

from crontask.errors import InvalidPattern

logger = logging.getLogger(__name__)

# Standard cron has five fields; croniter accepts a trailing seconds field.
UNIX_CRON_FIELDS = 5


@dataclass(frozen=True, slots=True)
class TemporalPattern:
    """A validated cron expression.

    Instances are created with parse() and shared read-only by every
    registration that uses the same expression text.
    """

    expression: str
    has_seconds: bool = False

    @classmethod
    def parse(cls, expression: str) -> "TemporalPattern":
        """Parse a cron expression.

        Raises:
            InvalidPattern: If the expression is empty or malformed.
        """
        if not isinstance(expression, str) or not expression.strip():
            raise InvalidPattern(str(expression), "expression is empty")

        text = expression.strip()
        try:
            croniter(text)
        except (ValueError, KeyError, TypeError) as e:
            # CroniterError derives from ValueError
            raise InvalidPattern(expression, str(e) or type(e).__name__) from e

        fields = text.split()
        return cls(
            expression=text,
            has_seconds=len(fields) > UNIX_CRON_FIELDS,
        )

    def is_due(self, when: datetime | None = None, strict: bool = False) -> bool:
        """Check whether the pattern matches an instant.

        Args:
            when: Instant to evaluate. Defaults to the current local time.
                Timezone-aware instants are matched in their own timezone.
            strict: Require the instant to sit exactly on a matching boundary.
                When False, the sub-precision part of the instant is ignored
                (12:05:37 is due for "*/5 * * * *").
        """
        if when is None:
            when = datetime.now().astimezone()

        if self.has_seconds:
            aligned = when.replace(microsecond=0)
        else:
            aligned = when.replace(second=0, microsecond=0)

        if strict and aligned != when:
            return False

        return croniter.match(self.expression, aligned)

    def __str__(self) -> str:
        return self.expression


PatternParser = Callable[[str], TemporalPattern]


class PatternCache:
    """Memoizes parsed patterns by their text.

    Only successful parses are stored; a pattern that fails to parse raises
    every time it is resolved.
    """

    def __init__(self, parser: PatternParser | None = None) -> None:
        self._parser = parser or TemporalPattern.parse
        self._patterns: dict[str, TemporalPattern] = {}

    def resolve(self, expression: str) -> TemporalPattern:
        pattern = self._patterns.get(expression)
        if pattern is None:
            pattern = self._parser(expression)
            self._patterns[expression] = pattern
            logger.debug(f"Parsed cron expression '{expression}'")
        return pattern

    def __contains__(self, expression: object) -> bool:
        return expression in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)
