"""Timestamp and derived-field rules applied to documents before they are saved."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp_new(doc: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    doc["createdAt"] = now
    doc["updatedAt"] = now
    return doc


def stamp_update(patch: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    patch["updatedAt"] = now or utcnow()
    return patch


def new_work_order(doc: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    stamp_new(doc, now)
    doc["completedDate"] = now if doc.get("status") == "completed" else None
    return doc


def apply_work_order_status(
    existing: Dict[str, Any], status: str, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Build the $set patch for a status change on a work order.

    completedDate is stamped the first time the order reaches "completed" and
    is never moved afterwards, even if the order goes back to pending.
    """
    now = now or utcnow()
    patch: Dict[str, Any] = {}
    if existing.get("status") == status:
        return patch
    patch["status"] = status
    patch["updatedAt"] = now
    if status == "completed" and not existing.get("completedDate"):
        patch["completedDate"] = now
    return patch
