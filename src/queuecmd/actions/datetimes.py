"""Normalization of user-supplied activation times."""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from dateparser.date import DateDataParser

from queuecmd.actions.errors import InvalidDateError
from queuecmd.actions.models import NormalizedTime

# Integers up to five days are offsets from now, larger ones are epochs.
RELATIVE_THRESHOLD_SECONDS = 5 * 24 * 60 * 60

_INTEGER_PATTERN = re.compile(r"^\d+$")
_MAX_CACHED_PARSERS = 8
PARSER_LANGUAGES = ("en",)


class DateTimeNormalizer:
    """Turns relative or absolute time expressions into :class:`NormalizedTime`.

    Free-form expressions ("tomorrow 9am", "2026-03-01 12:00") are read in
    local time, or in ``timezone`` when one is configured, and re-expressed
    in UTC. The normalizer owns its date parsers; one instance is meant to be
    built per process and shared by the handlers that need it.
    """

    def __init__(
        self,
        *,
        timezone: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.timezone = timezone
        self.clock = clock
        self._zone = ZoneInfo(timezone) if timezone else None
        self._parsers: dict[int, DateDataParser] = {}

    def normalize(self, value: str | None, *, now: int | None = None) -> NormalizedTime | None:
        """Return the activation time for ``value``, or None when no time was given.

        Args:
            value: Seconds offset, epoch seconds, or a free-form date/time.
            now: Current epoch seconds; the clock is read when omitted.

        Raises:
            InvalidDateError: ``value`` cannot be resolved to a calendar day.
        """

        if value is None:
            return None
        text = value.strip()
        if not text:
            return None

        current = int(self.clock()) if now is None else int(now)
        if _INTEGER_PATTERN.match(text):
            number = int(text)
            if number <= RELATIVE_THRESHOLD_SECONDS:
                return NormalizedTime(epoch=current + number)
            return NormalizedTime(epoch=number)

        return NormalizedTime(epoch=self._parse_epoch(text, current=current))

    def _parse_epoch(self, text: str, *, current: int) -> int:
        date_data = self._parser(current).get_date_data(text)
        parsed = date_data.date_obj
        if parsed is None:
            raise InvalidDateError(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self._zone) if self._zone else parsed.astimezone()
        return int(parsed.astimezone(UTC).timestamp())

    def _parser(self, current: int) -> DateDataParser:
        parser = self._parsers.get(current)
        if parser is not None:
            return parser
        if len(self._parsers) >= _MAX_CACHED_PARSERS:
            self._parsers.clear()
        parser = DateDataParser(languages=list(PARSER_LANGUAGES), settings=self._settings(current))
        self._parsers[current] = parser
        return parser

    def _settings(self, current: int) -> dict[str, Any]:
        # dateparser expects a naive relative base expressed in the input timezone.
        relative_base = datetime.fromtimestamp(current, tz=self._zone).replace(tzinfo=None)
        settings: dict[str, Any] = {
            "RETURN_AS_TIMEZONE_AWARE": True,
            "TO_TIMEZONE": "UTC",
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": relative_base,
        }
        if self.timezone:
            settings["TIMEZONE"] = self.timezone
        return settings
