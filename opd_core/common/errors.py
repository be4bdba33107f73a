# opd_core/common/errors.py
"""
Domain exceptions raised by services.

Views never catch these one by one: the DRF exception handler maps them onto
HTTP status codes and the standard error envelope.
"""
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    code = "domain_error"
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(DomainError):
    code = "validation_error"
    default_message = "Invalid input."


class NotFound(DomainError):
    code = "not_found"
    default_message = "Not found."


class BusinessRuleViolation(DomainError):
    code = "conflict"
    default_message = "Conflict."


class InvalidTransition(BusinessRuleViolation):
    code = "invalid_transition"
    default_message = "Visit is not in a state that allows this action."


class InsufficientStock(BusinessRuleViolation):
    code = "insufficient_stock"
    default_message = "Insufficient stock for one or more medicines."


class DuplicatePrescription(BusinessRuleViolation):
    code = "duplicate_prescription"
    default_message = "This medicine is already in the prescription."


class AlreadyRegistered(BusinessRuleViolation):
    code = "already_registered"
    default_message = "A patient with this Aadhar is already registered."


class AlreadyExists(BusinessRuleViolation):
    code = "already_exists"
    default_message = "Record already exists."


class ActiveVisitExists(BusinessRuleViolation):
    code = "active_visit_exists"
    default_message = "Patient already has an active visit."


class ReportAlreadyUploaded(BusinessRuleViolation):
    code = "report_already_uploaded"
    default_message = "A report has already been uploaded for this test."
