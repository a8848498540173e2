"""
Invoice number generation from a configurable template.

A template such as "FV/{year}/{month}/{number}" is tokenized once into
literal and placeholder segments. The same segments render new numbers
and build the regex used to validate and parse existing ones.

Placeholders:
    {year}      4-digit year of the issue date
    {month}     2-digit month of the issue date
    {number}    per-(year, month) sequence, zero-padded to 4 digits
    {number:N}  same, zero-padded to N digits

Concurrency:
    The next sequence number is "count of invoices this month + 1", read
    without a lock, so two concurrent requests can compute the same
    number. generate_with_retry() checks the candidate against stored
    numbers, backs off with jitter and retries. When retries run out it
    appends a -HHMMSS suffix: uniqueness wins over format conformance.

Format validation is shape-only: "FV/2024/13/0001" passes because the
month is two digits, even though there is no 13th month.
"""

import logging
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Protocol

from .errors import InvalidTemplate

logger = logging.getLogger(__name__)


DEFAULT_TEMPLATE = "FV/{year}/{month}/{number}"
DEFAULT_NUMBER_WIDTH = 4
DEFAULT_MAX_RETRIES = 5

_PLACEHOLDER = re.compile(r"\{(year|month|number)(?::(\d+))?\}")
_NUMBER_PLACEHOLDER = re.compile(r"\{number(?::\d+)?\}")
_DIGITS = {"year": 4, "month": 2}


# =============================================================================
# Collaborators
# =============================================================================

class SequenceSource(Protocol):
    def next_sequence_number(self, year: int, month: int) -> int:
        """Count of non-deleted invoices issued in year/month, plus one."""
        ...


class NumberUniquenessCheck(Protocol):
    def exists_by_number(self, number: str) -> bool: ...


class FormatPreferenceSource(Protocol):
    def get_template(self) -> str:
        """Currently configured number template (or the default if unset)."""
        ...


# =============================================================================
# Template
# =============================================================================

@dataclass(frozen=True)
class Placeholder:
    name: str
    width: int


Segment = str | Placeholder


@dataclass(frozen=True)
class ParsedNumber:
    year: int
    month: int
    sequence: int


def missing_placeholders(template: str) -> list[str]:
    """Return the required placeholders absent from the template, in order."""
    missing = [p for p in ("{year}", "{month}") if p not in template]
    if not _NUMBER_PLACEHOLDER.search(template):
        missing.append("{number}")
    return missing


def validate_template(template: str) -> None:
    """
    Check that a template can produce dated, sequenced numbers.

    Raises:
        InvalidTemplate: Naming every missing placeholder
    """
    missing = missing_placeholders(template)
    if missing:
        raise InvalidTemplate(template, missing)


class NumberTemplate:
    """
    A tokenized invoice number template.

    Use `compile_template()` to get a cached instance.
    """

    def __init__(self, template: str) -> None:
        self.template = template
        self.segments: tuple[Segment, ...] = tuple(self._tokenize(template))
        self.pattern = re.compile(self._build_pattern())

    @staticmethod
    def _tokenize(template: str) -> list[Segment]:
        segments: list[Segment] = []
        position = 0
        for match in _PLACEHOLDER.finditer(template):
            if match.start() > position:
                segments.append(template[position:match.start()])
            name, width = match.group(1), match.group(2)
            if name == "number":
                digits = int(width) if width else DEFAULT_NUMBER_WIDTH
            elif width is None:
                digits = _DIGITS[name]
            else:
                # {year:N} / {month:N} are not placeholders
                segments.append(match.group(0))
                position = match.end()
                continue
            segments.append(Placeholder(name, digits))
            position = match.end()
        if position < len(template):
            segments.append(template[position:])
        return segments

    def _build_pattern(self) -> str:
        parts = ["^"]
        seen: set[str] = set()
        for segment in self.segments:
            if isinstance(segment, str):
                parts.append(re.escape(segment))
            elif segment.name in seen:
                parts.append(rf"\d{{{segment.width}}}")
            else:
                seen.add(segment.name)
                parts.append(rf"(?P<{segment.name}>\d{{{segment.width}}})")
        parts.append("$")
        return "".join(parts)

    def render(self, year: int, month: int, sequence: int) -> str:
        values = {"year": year, "month": month, "number": sequence}
        return "".join(
            segment if isinstance(segment, str)
            else str(values[segment.name]).zfill(segment.width)
            for segment in self.segments
        )

    def matches(self, number: str) -> bool:
        return self.pattern.match(number) is not None

    def parse(self, number: str) -> ParsedNumber | None:
        match = self.pattern.match(number)
        if match is None:
            return None
        groups = match.groupdict()
        if not {"year", "month", "number"} <= groups.keys():
            return None
        return ParsedNumber(
            year=int(groups["year"]),
            month=int(groups["month"]),
            sequence=int(groups["number"]),
        )


@lru_cache(maxsize=32)
def compile_template(template: str) -> NumberTemplate:
    return NumberTemplate(template)


# =============================================================================
# Generator
# =============================================================================

class InvoiceNumberGenerator:
    """
    Produces invoice numbers for a given issue date.

    Example:
        generator = InvoiceNumberGenerator(
            sequences=invoice_repository,
            uniqueness=invoice_repository,
            preferences=preference_repository,
        )
        number = generator.generate_with_retry(date(2024, 10, 15))
        # 'FV/2024/10/0001'
    """

    def __init__(
        self,
        sequences: SequenceSource,
        uniqueness: NumberUniquenessCheck,
        preferences: FormatPreferenceSource | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_ms: tuple[int, int] = (10, 50),
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize the generator.

        Args:
            sequences: Source of the next per-month sequence number
            uniqueness: Lookup of already persisted numbers
            preferences: Source of the number template (default template if None)
            max_retries: Attempts before falling back to a timestamp suffix
            backoff_ms: Bounds of the random delay between attempts
            sleep: Sleep function, injectable for tests
            clock: Wall clock for the fallback suffix, injectable for tests
        """
        self.sequences = sequences
        self.uniqueness = uniqueness
        self.preferences = preferences
        self.max_retries = max_retries
        self.backoff_ms = backoff_ms
        self._sleep = sleep
        self._clock = clock

    @property
    def template(self) -> str:
        if self.preferences is None:
            return DEFAULT_TEMPLATE
        return self.preferences.get_template() or DEFAULT_TEMPLATE

    def _compiled(self) -> NumberTemplate:
        return compile_template(self.template)

    def generate(self, issue_date: date) -> str:
        """Render the next number for the issue date's year and month."""
        sequence = self.sequences.next_sequence_number(issue_date.year, issue_date.month)
        number = self._compiled().render(issue_date.year, issue_date.month, sequence)
        logger.debug(f"Generated invoice number {number} (sequence {sequence})")
        return number

    def is_valid_format(self, number: str) -> bool:
        return self._compiled().matches(number)

    def parse(self, number: str) -> ParsedNumber | None:
        return self._compiled().parse(number)

    def is_number_taken(self, number: str) -> bool:
        return self.uniqueness.exists_by_number(number)

    def generate_with_retry(self, issue_date: date, max_retries: int | None = None) -> str:
        """
        Generate a number that is not yet taken.

        Never raises on collision: after `max_retries` attempts the number
        is suffixed with the current time as -HHMMSS.
        """
        retries = max_retries if max_retries is not None else self.max_retries
        attempts = 0

        while attempts < retries:
            number = self.generate(issue_date)
            if not self.is_number_taken(number):
                return number

            attempts += 1
            logger.warning(f"Invoice number {number} already taken (attempt {attempts}/{retries})")
            if attempts < retries:
                low, high = self.backoff_ms
                self._sleep(random.uniform(low, high) / 1000)

        fallback = f"{self.generate(issue_date)}-{self._clock().strftime('%H%M%S')}"
        logger.error(f"Number generation exhausted {retries} attempts, using {fallback}")
        return fallback
