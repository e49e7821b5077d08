"""Check contract, outcomes and registry.

Every check is a subclass of ValidationCheck. A check is built for one
prediction and its hits, runs once, and produces one frozen
ValidationOutcome. The CheckRegistry knows every available check class and
resolves the aliases a user selects; the CheckRunner executes the selected
checks for one query.

Example:
    >>> from genevet.validation.base import CheckRunner, default_registry
    >>> registry = default_registry()
    >>> runner = CheckRunner(registry.select(["lenc", "lenr"]))
    >>> outcomes = runner.run(SequenceKind.PROTEIN, prediction, hits)
"""

from __future__ import annotations

import functools
import inspect
import logging
import re
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Iterable, Iterator

import attrs

from genevet.exceptions import (
    AliasDuplicationError,
    InfrastructureError,
    NoValidationError,
    ReportClassError,
    ValidationClassError,
)
from genevet.homology.hits import SequenceKind, SequenceRecord
from genevet.utils.logging import Timer

if TYPE_CHECKING:
    from genevet.io.fasta import RawSequenceIndex

logger = logging.getLogger(__name__)

ALL_CHECKS = "all"


# =============================================================================
# Enums
# =============================================================================


class ValidationState(Enum):
    """Discrete state of one check outcome."""

    SUCCESS = "success"
    """The prediction passed the check."""

    WARNING = "warning"
    """The check flags the prediction as suspicious."""

    ERROR = "error"
    """The check itself failed to run."""

    UNAPPLICABLE = "unapplicable"
    """The check does not apply (no evidence, wrong sequence kind)."""


class FailureCause(Enum):
    """External dependency whose absence made a check fail."""

    ALIGNER_UNAVAILABLE = "aligner_unavailable"
    NETWORK_UNAVAILABLE = "network_unavailable"


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True, frozen=True)
class ValidationOutcome:
    """Report of one check for one prediction.

    A check succeeds when ``result == expected``.

    Attributes:
        alias: Alias of the check that produced the outcome.
        state: Discrete outcome state.
        result: Observed value.
        expected: Value ``result`` is compared against.
        failures: Infrastructure causes of an ``error`` outcome.
        running_time: Seconds spent in ``run()``; filled by the runner.
        message: Short human-readable explanation.
    """

    alias: str
    state: ValidationState
    result: Any = None
    expected: Any = True
    failures: tuple[FailureCause, ...] = ()
    running_time: float | None = None
    message: str = ""

    @property
    def passed(self) -> bool:
        """Whether the observed value matches the expected one."""
        return self.result == self.expected

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "alias": self.alias,
            "state": self.state.value,
            "result": self.result,
            "expected": self.expected,
            "failures": [cause.value for cause in self.failures],
            "running_time": self.running_time,
            "message": self.message,
        }


@attrs.define(slots=True, frozen=True)
class CheckContext:
    """Run-level resources handed to every check.

    The built-in checks work from the prediction and its hits alone. These
    resources serve add-on checks, for example ones that compare a
    prediction with its raw sequence.

    Attributes:
        raw_index: Identifier index of the raw-sequence file, if any.
        db: BLAST database used for searches.
        num_threads: Threads available to external tools.
        output_dir: Directory for check artifacts.
    """

    raw_index: RawSequenceIndex | None = None
    db: str | None = None
    num_threads: int = 1
    output_dir: Path | None = None


# =============================================================================
# Check Contract
# =============================================================================


def _recording(run):
    @functools.wraps(run)
    def wrapper(self: ValidationCheck) -> ValidationOutcome:
        outcome = run(self)
        if isinstance(outcome, ValidationOutcome):
            self._outcome = outcome
        return outcome

    return wrapper


class ValidationCheck(ABC):
    """Base class of every check.

    Subclasses define ``alias`` (selector used on the command line and in
    reports), ``header`` and ``description``, and implement ``run()``.
    Every concrete ``run()`` is wrapped so that the outcome it returns is
    kept as ``outcome``, whether the check is run directly or by a
    CheckRunner.
    """

    alias: ClassVar[str]
    header: ClassVar[str]
    description: ClassVar[str] = ""

    def __init__(
        self,
        kind: SequenceKind,
        prediction: SequenceRecord,
        hits: list[SequenceRecord],
        context: CheckContext | None = None,
    ) -> None:
        """Initialize check.

        Args:
            kind: Kind of the input predictions.
            prediction: The prediction to check.
            hits: Database hits of the prediction.
            context: Run-level resources.
        """
        self.kind = kind
        self.prediction = prediction
        self.hits = hits
        self.context = context or CheckContext()
        self._outcome: ValidationOutcome | None = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        run = cls.__dict__.get("run")
        if run is not None and not getattr(run, "__isabstractmethod__", False):
            cls.run = _recording(run)

    @abstractmethod
    def run(self) -> ValidationOutcome:
        """Perform the check and return its outcome."""

    @property
    def outcome(self) -> ValidationOutcome | None:
        """Outcome of the last completed run, or None before it."""
        return self._outcome

    def report(self, passed: bool, message: str = "") -> ValidationOutcome:
        """Build a success or warning outcome."""
        return ValidationOutcome(
            alias=self.alias,
            state=ValidationState.SUCCESS if passed else ValidationState.WARNING,
            result=bool(passed),
            expected=True,
            message=message,
        )

    def unapplicable(self, message: str) -> ValidationOutcome:
        """Build an outcome for a check that does not apply."""
        return ValidationOutcome(
            alias=self.alias,
            state=ValidationState.UNAPPLICABLE,
            result=None,
            expected=True,
            message=message,
        )


# =============================================================================
# Registry
# =============================================================================


def parse_validations(entries: Iterable[str] | str) -> list[str]:
    """Split alias entries on whitespace and commas.

    Example:
        >>> parse_validations(["lenc, lenr", "frame"])
        ['lenc', 'lenr', 'frame']
    """
    if isinstance(entries, str):
        entries = [entries]
    names = []
    for entry in entries:
        names.extend(token for token in re.split(r"[\s,]+", entry) if token)
    return names


class CheckRegistry:
    """Ordered set of check classes addressable by alias.

    Aliases are compared case-insensitively.
    """

    def __init__(self, checks: Iterable[type[ValidationCheck]] = ()) -> None:
        self._checks: dict[str, type[ValidationCheck]] = {}
        for check in checks:
            self.register(check)

    def register(self, check: Any) -> type[ValidationCheck]:
        """Add a check class.

        Raises:
            ValidationClassError: If ``check`` is not a concrete
                ValidationCheck subclass.
            AliasDuplicationError: If its alias is already registered.
        """
        if not (inspect.isclass(check) and issubclass(check, ValidationCheck)):
            raise ValidationClassError(f"{check!r} is not a ValidationCheck subclass")
        if inspect.isabstract(check) or not getattr(check, "alias", None):
            raise ValidationClassError(f"{check.__name__} does not implement the check contract")

        key = check.alias.strip().lower()
        if key in self._checks:
            raise AliasDuplicationError(
                f"alias '{check.alias}' is used by both "
                f"{self._checks[key].__name__} and {check.__name__}"
            )
        self._checks[key] = check
        return check

    def get(self, alias: str) -> type[ValidationCheck] | None:
        return self._checks.get(alias.strip().lower())

    @property
    def aliases(self) -> list[str]:
        """Registered aliases in registration order."""
        return [check.alias for check in self._checks.values()]

    def select(self, names: Iterable[str]) -> list[type[ValidationCheck]]:
        """Resolve selected aliases to check classes.

        Args:
            names: Aliases, or ``all``. Matching ignores case and
                surrounding whitespace.

        Returns:
            Selected classes in registration order.

        Raises:
            NoValidationError: If nothing is selected.
        """
        wanted = {name.strip().lower() for name in names if name.strip()}

        if ALL_CHECKS in wanted:
            selected = list(self._checks.values())
        else:
            selected = [check for key, check in self._checks.items() if key in wanted]
            unknown = sorted(wanted - set(self._checks))
            if unknown:
                logger.warning(f"Ignoring unknown check aliases: {', '.join(unknown)}")

        if not selected:
            raise NoValidationError(
                f"no check selected; valid aliases are: {', '.join(self.aliases)}"
            )
        return selected

    def __iter__(self) -> Iterator[type[ValidationCheck]]:
        return iter(self._checks.values())

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, alias: str) -> bool:
        return alias.strip().lower() in self._checks


def default_registry() -> CheckRegistry:
    """Registry holding the built-in checks."""
    from genevet.validation.frame import ReadingFrameCheck
    from genevet.validation.length import LengthClusterCheck, LengthRankCheck

    return CheckRegistry([LengthClusterCheck, LengthRankCheck, ReadingFrameCheck])


# =============================================================================
# Runner
# =============================================================================


class CheckRunner:
    """Run a fixed selection of checks for one query at a time.

    Exceptions raised inside ``run()`` become ``error`` outcomes.
    Infrastructure errors add their FailureCause. A ``run()`` that returns
    anything but a ValidationOutcome is a contract violation and raises.
    """

    def __init__(
        self,
        checks: list[type[ValidationCheck]],
        context: CheckContext | None = None,
    ) -> None:
        self.checks = list(checks)
        self.context = context or CheckContext()

    def run(
        self,
        kind: SequenceKind,
        prediction: SequenceRecord,
        hits: list[SequenceRecord],
    ) -> list[ValidationOutcome]:
        """Run every selected check.

        Returns:
            One outcome per check, in selection order.

        Raises:
            ReportClassError: If a check returns a non-outcome.
        """
        outcomes = []
        for check_class in self.checks:
            check = check_class(kind, prediction, hits, self.context)
            outcomes.append(self._run_one(check))
        return outcomes

    def _run_one(self, check: ValidationCheck) -> ValidationOutcome:
        with Timer(check.alias) as timer:
            try:
                outcome = check.run()
            except Exception as e:
                failures = ()
                if isinstance(e, InfrastructureError) and e.cause is not None:
                    failures = (e.cause,)
                logger.warning(f"{check.prediction.identifier}: check '{check.alias}' failed: {e}")
                outcome = ValidationOutcome(
                    alias=check.alias,
                    state=ValidationState.ERROR,
                    result=None,
                    expected=True,
                    failures=failures,
                    message=str(e),
                )

        if not isinstance(outcome, ValidationOutcome):
            raise ReportClassError(
                f"check '{check.alias}' returned {type(outcome).__name__}, "
                "not a ValidationOutcome"
            )

        outcome = attrs.evolve(outcome, running_time=timer.elapsed)
        check._outcome = outcome
        return outcome
