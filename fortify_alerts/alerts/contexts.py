"""Pure functions that turn mill domain events into alert contexts.

Each builder returns ``(AlertType, context)`` ready for
``AlertEscalationScheduler.raise_alert``. Keys understood by the renderers:
``title``, ``summary``, ``message``, ``link``, ``deadline``; ``mill_id`` and
``tenant_id`` scope recipient resolution.
"""

from __future__ import annotations

import datetime
from typing import Any

from fortify_alerts.alerts.types import AlertType

AlertContext = tuple[AlertType, dict[str, Any]]


def _iso(value: datetime.datetime | datetime.date) -> str:
    return value.isoformat()


def qc_failure(
    batch_id: str,
    mill_id: str,
    mill_name: str,
    test_type: str,
    failure_reason: str,
) -> AlertContext:
    """QC test failed for a production batch."""
    message = (
        f"QC test failed at {mill_name}\n\n"
        f"Batch ID: {batch_id}\n"
        f"Test Type: {test_type}\n"
        f"Failure Reason: {failure_reason}\n\n"
        "Immediate action required. Please review the batch and take "
        "corrective measures."
    )
    return AlertType.QC_FAILURE, {
        "title": f"QC Failure - Batch {batch_id}",
        "summary": f"Batch {batch_id} at {mill_name}, {test_type} failed",
        "message": message,
        "link": f"/batches/{batch_id}",
        "batch_id": batch_id,
        "mill_id": mill_id,
        "test_type": test_type,
    }


def premix_inventory_low(
    mill_id: str,
    mill_name: str,
    current_stock_kg: float,
    reorder_point_kg: float,
    days_remaining: int,
) -> AlertContext:
    """Premix stock has dropped below the reorder point."""
    message = (
        f"Premix inventory is running low at {mill_name}\n\n"
        f"Current Stock: {current_stock_kg} kg\n"
        f"Reorder Point: {reorder_point_kg} kg\n"
        f"Estimated Days Remaining: {days_remaining} days\n\n"
        "Please reorder premix to avoid production disruptions."
    )
    return AlertType.LOW_PREMIX_INVENTORY, {
        "title": f"Low Premix Inventory - {mill_name}",
        "summary": f"{current_stock_kg} kg left, ~{days_remaining} days",
        "message": message,
        "link": "/inventory/premix",
        "mill_id": mill_id,
    }


def maintenance_due(
    task_id: str,
    equipment_name: str,
    mill_id: str,
    mill_name: str,
    due_date: datetime.date,
    is_overdue: bool,
) -> AlertContext:
    """Calibration coming due, or already overdue."""
    status = "OVERDUE" if is_overdue else "DUE SOON"
    follow_up = (
        "This task is overdue. Please complete immediately."
        if is_overdue
        else "Please schedule this maintenance task."
    )
    message = (
        f"Maintenance {status.lower()} for {equipment_name} at {mill_name}\n\n"
        f"Equipment: {equipment_name}\n"
        f"Due Date: {_iso(due_date)}\n"
        f"Status: {status}\n\n"
        f"{follow_up}"
    )
    alert_type = AlertType.CALIBRATION_OVERDUE if is_overdue else AlertType.CALIBRATION_DUE
    return alert_type, {
        "title": f"Maintenance {status} - {equipment_name}",
        "summary": f"{equipment_name} calibration {status.lower()}",
        "message": message,
        "link": f"/maintenance/tasks/{task_id}",
        "deadline": _iso(due_date),
        "task_id": task_id,
        "mill_id": mill_id,
    }


def compliance_audit_reminder(
    audit_id: str,
    mill_id: str,
    mill_name: str,
    scheduled_date: datetime.date,
    days_until_audit: int,
) -> AlertContext:
    """Upcoming certification audit; records must be ready before the date."""
    message = (
        f"Upcoming compliance audit for {mill_name}\n\n"
        f"Scheduled Date: {_iso(scheduled_date)}\n"
        f"Days Until Audit: {days_until_audit}\n\n"
        "Please ensure all documentation and records are up to date."
    )
    return AlertType.CERTIFICATION_EXPIRY, {
        "title": f"Compliance Audit Reminder - {mill_name}",
        "summary": f"Audit at {mill_name} in {days_until_audit} days",
        "message": message,
        "link": f"/compliance/audits/{audit_id}",
        "deadline": _iso(scheduled_date),
        "audit_id": audit_id,
        "mill_id": mill_id,
    }


def new_rfp_match(
    rfp_id: str,
    rfp_title: str,
    buyer_name: str,
    mill_id: str,
    submission_deadline: datetime.datetime,
) -> AlertContext:
    """A newly published RFP matches the mill's profile."""
    return AlertType.NEW_RFP_MATCH, {
        "title": f"New RFP: {rfp_title}",
        "summary": f"{buyer_name} published {rfp_title}",
        "message": (
            f"A new request for proposals matches your mill.\n\n"
            f"RFP: {rfp_title}\n"
            f"Buyer: {buyer_name}"
        ),
        "link": f"/rfps/{rfp_id}",
        "deadline": _iso(submission_deadline),
        "rfp_id": rfp_id,
        "mill_id": mill_id,
    }


def bid_deadline_approaching(
    rfp_id: str,
    rfp_title: str,
    mill_id: str,
    submission_deadline: datetime.datetime,
    hours_left: int,
) -> AlertContext:
    """Bid submission closes soon and no bid has been submitted."""
    return AlertType.BID_DEADLINE_APPROACHING, {
        "title": f"Bid deadline in {hours_left}h: {rfp_title}",
        "summary": f"{rfp_title} closes in {hours_left}h",
        "link": f"/rfps/{rfp_id}",
        "deadline": _iso(submission_deadline),
        "rfp_id": rfp_id,
        "mill_id": mill_id,
    }


def training_overdue(
    user_name: str,
    course_title: str,
    mill_id: str,
    course_id: str,
    due_date: datetime.date,
) -> AlertContext:
    """Mandatory training not completed by its due date."""
    return AlertType.TRAINING_OVERDUE, {
        "title": f"Training overdue: {course_title}",
        "summary": f"{user_name} has not completed {course_title}",
        "link": f"/training/courses/{course_id}",
        "deadline": _iso(due_date),
        "course_id": course_id,
        "mill_id": mill_id,
    }
