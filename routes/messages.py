from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo import DESCENDING, ReturnDocument

from auth import get_current_admin
from config import logger
from crud import (audit_fields, bulk_action, count_by, days_ago, get_or_404, ok, paginate, parse_object_id,
                  search_filter, serialize)
from database import create_document, get_collection
from errors import server_error
from mailer import MailError, Mailer, get_mailer
from schemas import MESSAGE_STATUSES, BulkRequest, Contact, MessageStatusUpdate, ReplyRequest

router = APIRouter(prefix="/api/contact", tags=["contact"])
admin_router = APIRouter(prefix="/api/admin/messages", tags=["admin: messages"])

SEARCH_FIELDS = ("name", "email", "subject", "message")
BULK_ACTIONS = {
    "mark-read": {"status": "read"},
    "mark-unread": {"status": "unread"},
    "delete": None,
}


def messages():
    return get_collection("contact")


def response_rate(replied: int, total: int) -> int:
    if not total:
        return 0
    return round(replied / total * 100)


@router.post("", status_code=201)
def submit_contact(contact: Contact, mailer: Mailer = Depends(get_mailer)):
    doc = contact.model_dump()
    doc["email"] = doc["email"].lower()
    doc["status"] = "unread"
    message_id = create_document("contact", doc)
    logger.info("Contact message %s stored from %s", message_id, doc["email"])

    try:
        mailer.notify_new_contact(doc)
        mailer.send_auto_reply(doc)
    except MailError as exc:
        raise server_error("Failed to send message", exc)
    return ok({"id": message_id}, "Message sent successfully")


# =====
# Admin
# =====

@admin_router.get("")
def list_messages(
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: dict = Depends(get_current_admin),
):
    query = {}
    if status in MESSAGE_STATUSES:
        query["status"] = status
    if search:
        query.update(search_filter(search, SEARCH_FIELDS))
    items, pagination = paginate(messages(), query, [("created_at", DESCENDING), ("_id", DESCENDING)], page, limit)
    return ok([serialize(m) for m in items], pagination=pagination)


@admin_router.get("/stats")
def message_stats(_: dict = Depends(get_current_admin)):
    total = messages().count_documents({})
    replied = messages().count_documents({"status": "replied"})
    return ok({
        "totalMessages": total,
        "unreadMessages": messages().count_documents({"status": "unread"}),
        "readMessages": messages().count_documents({"status": "read"}),
        "repliedMessages": replied,
        "recentMessages": messages().count_documents({"created_at": {"$gte": days_ago(7)}}),
        "responseRate": response_rate(replied, total),
        "statusCounts": count_by(messages(), "status"),
    })


@admin_router.post("/bulk")
def bulk_messages(data: BulkRequest, admin: dict = Depends(get_current_admin)):
    result = bulk_action(messages(), data.ids, data.action, BULK_ACTIONS, admin["_id"])
    return ok(result, f"Bulk {data.action} completed successfully")


@admin_router.get("/{message_id}")
def get_message(message_id: str, _: dict = Depends(get_current_admin)):
    oid = parse_object_id(message_id)
    doc = get_or_404(messages(), oid, "Message")
    if doc.get("status") == "unread":
        doc = messages().find_one_and_update(
            {"_id": oid, "status": "unread"},
            {"$set": {"status": "read", **audit_fields(None)}},
            return_document=ReturnDocument.AFTER,
        ) or get_or_404(messages(), oid, "Message")
    return ok(serialize(doc))


@admin_router.patch("/{message_id}/status")
def update_message_status(message_id: str, data: MessageStatusUpdate, admin: dict = Depends(get_current_admin)):
    doc = messages().find_one_and_update(
        {"_id": parse_object_id(message_id)},
        {"$set": {"status": data.status, **audit_fields(admin["_id"])}},
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        raise HTTPException(status_code=404, detail="Message not found")
    return ok(serialize(doc), f"Message marked as {data.status}")


@admin_router.post("/{message_id}/reply")
def reply_to_message(
    message_id: str,
    data: ReplyRequest,
    admin: dict = Depends(get_current_admin),
    mailer: Mailer = Depends(get_mailer),
):
    oid = parse_object_id(message_id)
    doc = get_or_404(messages(), oid, "Message")
    subject = data.reply_subject or f"Re: {doc['subject']}"

    try:
        mailer.send_reply(doc, subject, data.reply_message)
    except MailError as exc:
        raise server_error("Failed to send reply", exc)

    doc = messages().find_one_and_update(
        {"_id": oid},
        {"$set": {"status": "replied", **audit_fields(admin["_id"])}},
        return_document=ReturnDocument.AFTER,
    )
    return ok(serialize(doc), "Reply sent successfully")


@admin_router.delete("/{message_id}")
def delete_message(message_id: str, _: dict = Depends(get_current_admin)):
    res = messages().delete_one({"_id": parse_object_id(message_id)})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Message not found")
    return ok(message="Message deleted successfully")
