"""
Bill computation engine.

Derives balance and payment status for bills, checks that a new bill only
references existing customers and catalog items, and assembles the read view
with catalog names and prices.

The customer/item existence checks and the bill insert are separate store
round trips. A customer or item deleted in between still ends up referenced
by the new bill; this is accepted, best-effort consistency.
"""
import logging
from typing import Any, Dict, List

from pymongo import ReturnDocument
from pymongo.database import Database

from database import oid, to_str_id
from errors import InvalidReference, NotFound, ValidationError
from lifecycle import utcnow
from schemas import BillIn, is_customer_id

logger = logging.getLogger(__name__)

PENDING = "Pending"
PARTIALLY_PAID = "Partially Paid"
PAID = "Paid"


def payment_status(total: float, paid_amount: float) -> str:
    if paid_amount >= total:
        return PAID
    if paid_amount > 0:
        return PARTIALLY_PAID
    return PENDING


def derive_payment_state(total: float, paid_amount: float) -> Dict[str, Any]:
    # balance goes negative on overpayment
    return {
        "paidAmount": paid_amount,
        "balance": total - paid_amount,
        "paymentStatus": payment_status(total, paid_amount),
    }


def missing_item_ids(db: Database, item_ids: List[str]) -> List[str]:
    wanted = list(dict.fromkeys(item_ids))
    found = {d["itemId"] for d in db["billing"].find({"itemId": {"$in": wanted}}, {"itemId": 1})}
    return [i for i in wanted if i not in found]


def create_bill(db: Database, bill: BillIn) -> Dict[str, Any]:
    if not db["customer"].find_one({"customerId": bill.customer_id}, {"_id": 1}):
        raise NotFound("Customer not found")
    missing = missing_item_ids(db, [it.item_id for it in bill.items])
    if missing:
        raise InvalidReference(missing)

    doc = bill.to_document()
    doc.update(derive_payment_state(bill.total, bill.paid_amount))
    doc["date"] = utcnow()
    res = db["bill"].insert_one(doc)
    logger.info("Bill %s saved for %s (%s)", res.inserted_id, bill.customer_id, doc["paymentStatus"])
    return to_str_id(doc)


def record_payment(db: Database, bill_id: str, paid_amount: float) -> Dict[str, Any]:
    """Replace the bill's paid total and recompute its balance and status."""
    _id = oid(bill_id)
    if not _id:
        raise NotFound("Bill not found")
    bill = db["bill"].find_one({"_id": _id}, {"total": 1})
    if not bill:
        raise NotFound("Bill not found")

    state = derive_payment_state(bill["total"], paid_amount)
    upd = db["bill"].find_one_and_update(
        {"_id": _id}, {"$set": state}, return_document=ReturnDocument.AFTER
    )
    if not upd:
        raise NotFound("Bill not found")
    logger.info("Payment recorded on bill %s: %s (%s)", bill_id, paid_amount, state["paymentStatus"])
    return to_str_id(upd)


def enrich_bills(db: Database, bills: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Replace each bill's line items with {itemId, name, price, quantity}.

    Line items whose catalog entry has since been deleted are dropped.
    """
    item_ids = list({it["itemId"] for b in bills for it in b.get("items", [])})
    catalog: Dict[str, Dict[str, Any]] = {}
    if item_ids:
        for c in db["billing"].find({"itemId": {"$in": item_ids}}):
            catalog[c["itemId"]] = c

    out = []
    for b in bills:
        view = to_str_id(b)
        view["items"] = [
            {
                "itemId": it["itemId"],
                "name": catalog[it["itemId"]].get("name"),
                "price": catalog[it["itemId"]].get("price"),
                "quantity": it["quantity"],
            }
            for it in b.get("items", [])
            if it["itemId"] in catalog
        ]
        out.append(view)
    return out


def list_bills_for_customer(db: Database, customer_id: str) -> List[Dict[str, Any]]:
    if not is_customer_id(customer_id):
        raise ValidationError("Invalid customer ID format")
    # unknown customers have no bills; not an error
    if not db["customer"].find_one({"customerId": customer_id}, {"_id": 1}):
        return []
    bills = list(db["bill"].find({"customerId": customer_id}).sort("date", -1))
    return enrich_bills(db, bills)


def get_bill(db: Database, bill_id: str) -> Dict[str, Any]:
    _id = oid(bill_id)
    bill = db["bill"].find_one({"_id": _id}) if _id else None
    if not bill:
        raise NotFound("Bill not found")
    return enrich_bills(db, [bill])[0]
