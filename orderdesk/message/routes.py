# orderdesk/message/routes.py
import re
from flask import request, current_app
from ..extensions import db
from ..model import ContactMessage, Role
from ..menu.routes import _parse_bool
from ..utils.api import ok, err
from ..utils.decorators import role_required
from . import bp

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_REQUIRED = ("name", "email", "subject", "message")

@bp.post("/contact")
def contact():
    """Public contact form. Body: {name, email, subject, message, phone?}"""
    data = request.get_json(silent=True) or {}
    fields = {k: str(data.get(k) or "").strip() for k in _REQUIRED + ("phone",)}
    if not all(fields[k] for k in _REQUIRED):
        return err("Missing required fields", 400)
    if not EMAIL_RE.match(fields["email"]):
        return err("Invalid email format", 400)

    msg = ContactMessage(
        name=fields["name"],
        email=fields["email"].lower(),
        phone=fields["phone"] or None,
        subject=fields["subject"],
        message=fields["message"],
        is_read=False,
    )
    db.session.add(msg)
    db.session.commit()
    current_app.logger.info("contact message %s from %s", msg.id, msg.email)
    return ok("Your message has been sent successfully. We will get back to you within 24 hours.",
              {"id": msg.id}, status=201)

# ---- admin ------------------------------------------------------------------

@bp.get("/admin/messages")
@role_required(Role.ADMIN)
def list_messages():
    q = ContactMessage.query
    unread = request.args.get("unread")
    if unread is not None:
        q = q.filter(ContactMessage.is_read == (not _parse_bool(unread)))
    rows = q.order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc()).all()
    unread_count = ContactMessage.query.filter_by(is_read=False).count()
    return ok("messages", {"items": [m.as_api() for m in rows], "unread": unread_count})

@bp.route("/admin/messages/<int:message_id>", methods=["PUT", "PATCH"])
@role_required(Role.ADMIN)
def mark_message(message_id: int):
    msg = db.session.get(ContactMessage, message_id)
    if not msg:
        return err("Message not found", 404)
    data = request.get_json(silent=True) or {}
    msg.is_read = _parse_bool(data.get("is_read"), True)
    db.session.commit()
    return ok("Message updated", msg.as_api())

@bp.delete("/admin/messages/<int:message_id>")
@role_required(Role.ADMIN)
def delete_message(message_id: int):
    msg = db.session.get(ContactMessage, message_id)
    if not msg:
        return err("Message not found", 404)
    db.session.delete(msg)
    db.session.commit()
    return ok("Message deleted")
