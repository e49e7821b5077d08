"""Exceptions raised by GeneVet.

Structural errors (unparsable input, mixed sequence types, broken check
contracts, bad selections) are fatal for a run and propagate to the CLI.
Infrastructure errors raised from inside a check are not fatal: the check
runner turns them into an ``error`` outcome carrying a ``FailureCause``.

The built-in checks need neither an aligner nor network access, so
AlignerUnavailableError and NetworkUnavailableError are raised only by
add-on checks registered next to them. The run summary counts them all
the same.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from genevet.validation.base import FailureCause


class GeneVetError(Exception):
    """Base class for all GeneVet errors."""

    kind = "GeneVet error"


class FormatError(GeneVetError):
    """Input FASTA or search results are not in a supported format."""

    kind = "Format error"


class SequenceTypeError(GeneVetError):
    """Mixed sequence kinds, or non-protein alignment content."""

    kind = "Sequence type error"


class ValidationClassError(GeneVetError):
    """A configured check does not implement ValidationCheck."""

    kind = "Validation class error"


class ReportClassError(GeneVetError):
    """A check returned something other than a ValidationOutcome."""

    kind = "Report class error"


class AliasDuplicationError(GeneVetError):
    """Two registered checks share the same alias."""

    kind = "Alias duplication error"


class NoValidationError(GeneVetError):
    """The requested aliases select no registered check."""

    kind = "No validation error"


class SearchToolError(GeneVetError):
    """The external search executable is missing or failed."""

    kind = "Search tool error"


class InfrastructureError(GeneVetError):
    """An optional external dependency of a check is unavailable.

    Subclasses set ``cause`` to the FailureCause counted in the run summary.
    """

    kind = "Infrastructure error"
    cause: FailureCause | None = None


class AlignerUnavailableError(InfrastructureError):
    """The multiple-alignment tool is not installed."""

    kind = "Aligner unavailable"

    def __init__(self, message: str = "alignment tool not found in PATH") -> None:
        from genevet.validation.base import FailureCause

        super().__init__(message)
        self.cause = FailureCause.ALIGNER_UNAVAILABLE


class NetworkUnavailableError(InfrastructureError):
    """A remote lookup service could not be reached."""

    kind = "Network unavailable"

    def __init__(self, message: str = "remote service unreachable") -> None:
        from genevet.validation.base import FailureCause

        super().__init__(message)
        self.cause = FailureCause.NETWORK_UNAVAILABLE
