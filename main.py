import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Database helpers (MongoDB)
import database
from database import db, to_str_id
import billing
from errors import Conflict, InvalidReference, NotFound, ShopError
from lifecycle import apply_work_order_status, new_work_order, stamp_new, stamp_update, utcnow
from schemas import (
    BillIn,
    CatalogItemIn,
    CustomerIn,
    CustomerUpdate,
    PaymentIn,
    ShopIn,
    WorkOrderIn,
    WorkOrderStatusIn,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]


# -----------------------------
# FastAPI App
# -----------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    database.ensure_indexes(db)
    logger.info("Tailor shop backend started (db=%s)", database.DATABASE_NAME)
    yield
    logger.info("Shutting down")
    database.close()


app = FastAPI(title="Tailor Shop Back Office API - MongoDB", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def send_error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if isinstance(exc, InvalidReference):
        return send_error(exc.status_code, exc.message, missingItemIds=exc.item_ids)
    return send_error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return send_error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = []
    for e in exc.errors():
        field = ".".join(str(p) for p in e.get("loc", ()) if p not in ("body", "query", "path"))
        details.append(f"{field}: {e.get('msg')}" if field else str(e.get("msg")))
    return send_error(400, details[0] if details else "Invalid request", details=details)


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning("Duplicate key on %s %s: %s", request.method, request.url.path, exc)
    return send_error(409, "Duplicate key")


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path)
    return send_error(500, "Internal Server Error")


@app.get("/")
def root():
    return {"message": "Tailor Shop Backend Running", "driver": "mongodb", "db": database.DATABASE_NAME}


@app.get("/health")
def health():
    try:
        db.command("ping")
        return {"status": "ok"}
    except Exception as e:
        logger.error("Health check failed: %s", e)
        raise HTTPException(status_code=500, detail="Database unavailable")


# -----------------------------
# Customers
# -----------------------------
@app.post("/customer/submitCustomers", status_code=201)
def submit_customer(payload: CustomerIn):
    if db["customer"].find_one({"customerId": payload.customer_id}):
        raise Conflict("Customer ID already exists")
    if db["customer"].find_one({"phoneNumber": payload.phone_number}):
        raise Conflict("Phone number already exists")

    doc = stamp_new(payload.to_document())
    db["customer"].insert_one(doc)
    logger.info("Customer %s created", payload.customer_id)
    return {
        "success": True,
        "message": "Customer saved successfully",
        "customerId": doc["customerId"],
        "createdAt": doc["createdAt"],
        "updatedAt": doc["updatedAt"],
    }


@app.get("/customer/getCustomers")
def get_customers(q: Optional[str] = Query(None, description="Search by name or phone number")):
    filt: Dict[str, Any] = {}
    if q:
        pattern = re.escape(q.strip())
        filt["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"phoneNumber": {"$regex": pattern, "$options": "i"}},
        ]
    customers = [to_str_id(d) for d in db["customer"].find(filt).sort("name", 1)]
    return {"success": True, "customers": customers, "total": len(customers)}


@app.put("/customer/updateCustomer/{customer_id:path}")
def update_customer(customer_id: str, payload: CustomerUpdate):
    if db["customer"].find_one({"phoneNumber": payload.phone_number, "customerId": {"$ne": customer_id}}):
        raise Conflict("Phone number already exists")

    upd = db["customer"].find_one_and_update(
        {"customerId": customer_id},
        {"$set": stamp_update(payload.to_document())},
        return_document=ReturnDocument.AFTER,
    )
    if not upd:
        raise NotFound("Customer not found")
    logger.info("Customer %s updated", customer_id)
    return {"success": True, "message": "Customer updated successfully", "customer": to_str_id(upd)}


@app.delete("/customer/deleteCustomer/{customer_id:path}")
def delete_customer(customer_id: str):
    res = db["customer"].delete_one({"customerId": customer_id})
    if res.deleted_count == 0:
        raise NotFound("Customer not found")
    logger.info("Customer %s deleted", customer_id)
    return {"success": True, "message": "Customer deleted successfully"}


@app.put("/customer/toggleFavorite/{customer_id:path}")
def toggle_favorite(customer_id: str):
    cur = db["customer"].find_one({"customerId": customer_id})
    if not cur:
        raise NotFound("Customer not found")

    favorite = not cur.get("favorite", False)
    db["customer"].update_one({"_id": cur["_id"]}, {"$set": stamp_update({"favorite": favorite})})
    return {
        "success": True,
        "message": f"Customer {'added to' if favorite else 'removed from'} favorites",
        "customerId": customer_id,
        "favorite": favorite,
    }


# -----------------------------
# Catalog items
# -----------------------------
@app.post("/billing/submitItems", status_code=201)
def submit_item(payload: CatalogItemIn):
    if db["billing"].find_one({"itemId": payload.item_id}):
        raise Conflict("Item ID already exists")

    doc = stamp_new(payload.to_document())
    db["billing"].insert_one(doc)
    logger.info("Item %s created", payload.item_id)
    return {
        "success": True,
        "message": "Item saved successfully",
        "itemId": doc["itemId"],
        "createdAt": doc["createdAt"],
        "updatedAt": doc["updatedAt"],
    }


@app.get("/billing/getItems")
def get_items():
    items = [to_str_id(d) for d in db["billing"].find({}).sort("name", 1)]
    return {"success": True, "items": items, "total": len(items)}


@app.put("/billing/updateItem")
def update_item(payload: CatalogItemIn):
    upd = db["billing"].find_one_and_update(
        {"itemId": payload.item_id},
        {"$set": stamp_update({"name": payload.name, "price": payload.price})},
        return_document=ReturnDocument.AFTER,
    )
    if not upd:
        raise NotFound("Item not found")
    logger.info("Item %s updated", payload.item_id)
    return {"success": True, "message": "Item updated successfully", "item": to_str_id(upd)}


@app.delete("/billing/submitItems/{item_id}")
def delete_item(item_id: str):
    res = db["billing"].delete_one({"itemId": item_id})
    if res.deleted_count == 0:
        raise NotFound("Item not found")
    logger.info("Item %s deleted", item_id)
    return {"success": True, "message": "Item deleted successfully"}


# -----------------------------
# Bills
# -----------------------------
@app.post("/bill/saveBill", status_code=201)
def save_bill(payload: BillIn):
    bill = billing.create_bill(db, payload)
    return {
        "success": True,
        "message": "Bill saved successfully",
        "billId": bill["id"],
        "balance": bill["balance"],
        "paymentStatus": bill["paymentStatus"],
    }


@app.get("/bill/getBills/{customer_id:path}")
def get_bills(customer_id: str):
    bills = billing.list_bills_for_customer(db, customer_id)
    return {"success": True, "bills": bills, "total": len(bills)}


@app.get("/bill/getBill/{bill_id}")
def get_bill(bill_id: str):
    return {"success": True, "bill": billing.get_bill(db, bill_id)}


@app.put("/bill/updatePayment/{bill_id}")
def update_payment(bill_id: str, payload: PaymentIn):
    bill = billing.record_payment(db, bill_id, payload.paid_amount)
    return {"success": True, "message": "Payment updated successfully", "bill": bill}


# -----------------------------
# Aari work orders
# -----------------------------
@app.post("/aari/submitOrder", status_code=201)
def submit_order(payload: WorkOrderIn):
    if db["aari"].find_one({"orderId": payload.order_id}):
        raise Conflict("Order ID already exists")

    doc = new_work_order(payload.to_document())
    db["aari"].insert_one(doc)
    logger.info("Work order %s created for %s", payload.order_id, payload.customer_id)
    return {"success": True, "message": "Order saved successfully", "orderId": doc["orderId"]}


@app.get("/aari/getOrders")
def get_orders(
    status: Optional[str] = Query(None, description="pending or completed"),
    customer_id: Optional[str] = Query(None, alias="customerId"),
):
    filt: Dict[str, Any] = {}
    if status:
        filt["status"] = status.lower()
    if customer_id:
        filt["customerId"] = customer_id
    orders = [to_str_id(d) for d in db["aari"].find(filt).sort("submissionDate", -1)]
    return {"success": True, "orders": orders, "total": len(orders)}


@app.get("/aari/getOrder/{order_id}")
def get_order(order_id: str):
    doc = db["aari"].find_one({"orderId": order_id})
    if not doc:
        raise NotFound("Order not found")
    return {"success": True, "order": to_str_id(doc)}


@app.put("/aari/updateStatus/{order_id}")
def update_order_status(order_id: str, payload: WorkOrderStatusIn):
    cur = db["aari"].find_one({"orderId": order_id})
    if not cur:
        raise NotFound("Order not found")

    now = utcnow()
    patch = apply_work_order_status(cur, payload.status, now)
    if payload.worker_price is not None:
        patch["workerPrice"] = payload.worker_price
    if payload.client_price is not None:
        patch["clientPrice"] = payload.client_price
    if not patch:
        return {"success": True, "message": "Order unchanged", "order": to_str_id(cur)}

    upd = db["aari"].find_one_and_update(
        {"_id": cur["_id"]}, {"$set": stamp_update(patch, now)}, return_document=ReturnDocument.AFTER
    )
    if not upd:
        raise NotFound("Order not found")
    logger.info("Work order %s now %s", order_id, upd.get("status"))
    return {"success": True, "message": "Order updated successfully", "order": to_str_id(upd)}


@app.delete("/aari/deleteOrder/{order_id}")
def delete_order(order_id: str):
    res = db["aari"].delete_one({"orderId": order_id})
    if res.deleted_count == 0:
        raise NotFound("Order not found")
    logger.info("Work order %s deleted", order_id)
    return {"success": True, "message": "Order deleted successfully"}


# -----------------------------
# Shop profile
# -----------------------------
@app.get("/shop/getShop")
def get_shop():
    doc = db["shop"].find_one({})
    return {"success": True, "shop": to_str_id(doc) if doc else ShopIn().to_document()}


@app.put("/shop/updateShop")
def update_shop(payload: ShopIn):
    now = utcnow()
    upd = db["shop"].find_one_and_update(
        {},
        {"$set": stamp_update(payload.to_document(), now), "$setOnInsert": {"createdAt": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Shop profile updated")
    return {"success": True, "message": "Shop updated successfully", "shop": to_str_id(upd)}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
