"""
Domain exceptions for contribforms.

Notes
-----
Engine code avoids raising generic exceptions for expected failure modes.
Validation failures are not exceptions: they are reported as data in
``FormState.errors``. Read failures are absorbed by the orchestrator.
"""

from __future__ import annotations


class ContribFormsError(RuntimeError):
    """Base exception for all contribforms domain failures."""


class FormError(ContribFormsError):
    """Raised when a form operation cannot be carried out."""


class UnknownFieldError(FormError):
    """Raised when an edit targets a field the form does not declare."""


class SubmissionInProgressError(FormError):
    """Raised when submit is called while a previous submit is still outstanding."""


class WriteFailedError(FormError):
    """Raised when the remote write for a validated submission is rejected."""


class SettingsError(ContribFormsError):
    """Raised when settings cannot be resolved or persisted."""
