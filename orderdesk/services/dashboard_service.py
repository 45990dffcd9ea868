# orderdesk/services/dashboard_service.py
"""
Read-only order statistics for the admin and branch dashboards.

Revenue never includes CANCELLED orders. "Today" and the trend buckets are
UTC days, the same clock orders are stamped with.
"""
import logging
from datetime import timedelta
from sqlalchemy import func
from ..extensions import db
from ..model import Branch, ContactMessage, Order, OrderItem, ORDER_STATUSES, Role, User
from ..utils.money import D, ZERO, round_money
from .pricing import utcnow

log = logging.getLogger(__name__)

CANCELLED = "CANCELLED"
TREND_DAYS = 7
RECENT_LIMIT = 10
TOP_ITEMS_LIMIT = 10

def _day_start(now):
    return now.replace(hour=0, minute=0, second=0, microsecond=0)

def _branch_filter(branch_id):
    return [Order.branch_id == branch_id] if branch_id is not None else []

def _count(*filters) -> int:
    return db.session.query(func.count(Order.id)).filter(*filters).scalar() or 0

def _revenue(*filters):
    total = (db.session.query(func.sum(Order.total))
             .filter(Order.status != CANCELLED, *filters)
             .scalar())
    return round_money(D(total))

def status_counts(branch_id=None) -> dict:
    rows = (db.session.query(Order.status, func.count(Order.id))
            .filter(*_branch_filter(branch_id))
            .group_by(Order.status)
            .all())
    counts = {s: 0 for s in ORDER_STATUSES}
    counts.update({status: n for status, n in rows if status})
    return counts

def daily_trend(now, branch_id=None, days: int = TREND_DAYS) -> list:
    """One bucket per day, oldest first, ending with today."""
    first = _day_start(now) - timedelta(days=days - 1)
    rows = (db.session.query(Order.created_at, Order.total)
            .filter(Order.created_at >= first, Order.status != CANCELLED, *_branch_filter(branch_id))
            .all())

    buckets = {(first + timedelta(days=i)).date(): [0, ZERO] for i in range(days)}
    for created_at, total in rows:
        bucket = buckets.get(created_at.date())
        if bucket is None:
            continue
        bucket[0] += 1
        bucket[1] += D(total)

    return [
        {"date": day.isoformat(), "day": day.strftime("%a"), "orders": n, "revenue": float(round_money(revenue))}
        for day, (n, revenue) in buckets.items()
    ]

def branch_stats() -> list:
    """Order count and revenue per active branch, best revenue first."""
    rows = (db.session.query(Order.branch_id, func.count(Order.id), func.sum(Order.total))
            .filter(Order.branch_id.isnot(None), Order.status != CANCELLED)
            .group_by(Order.branch_id)
            .all())
    perf = {branch_id: (n, total) for branch_id, n, total in rows}

    out = []
    for b in Branch.query.filter_by(is_active=True).order_by(Branch.name.asc()).all():
        n, total = perf.get(b.id, (0, None))
        out.append({
            "branch_id": b.id,
            "branch_name": b.name,
            "order_count": n,
            "revenue": float(round_money(D(total))),
        })
    out.sort(key=lambda s: s["revenue"], reverse=True)
    return out

def recent_orders(branch_id=None, limit: int = RECENT_LIMIT) -> list:
    rows = (Order.query.filter(*_branch_filter(branch_id))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .all())
    return [{
        "id": o.id,
        "order_number": o.order_number,
        "status": o.status,
        "total": float(o.total or 0),
        "guest_name": o.guest_name,
        "branch_id": o.branch_id,
        "created_at": o.created_at.isoformat() if o.created_at else None,
    } for o in rows]

def admin_overview(now=None) -> dict:
    now = now or utcnow()
    today = _day_start(now)
    counts = status_counts()
    stats = {
        "total_orders": _count(Order.status != CANCELLED),
        "total_revenue": float(_revenue()),
        "total_customers": User.query.filter_by(role=Role.CUSTOMER.value).count(),
        "today_orders": _count(Order.status != CANCELLED, Order.created_at >= today),
        "today_revenue": float(_revenue(Order.created_at >= today)),
        "pending_orders": counts["PENDING"],
        "preparing_orders": counts["PREPARING"],
        "delivered_orders": counts["DELIVERED"],
        "cancelled_orders": counts[CANCELLED],
        "unread_messages": ContactMessage.query.filter_by(is_read=False).count(),
    }
    log.debug("admin overview: %s", stats)
    return {
        "stats": stats,
        "status_counts": counts,
        "branch_stats": branch_stats(),
        "daily_trend": daily_trend(now),
        "recent_orders": recent_orders(),
    }

def branch_overview(branch, now=None) -> dict:
    now = now or utcnow()
    today = _day_start(now)
    scope = _branch_filter(branch.id)
    counts = status_counts(branch.id)
    return {
        "branch": {"id": branch.id, "name": branch.name},
        "stats": {
            "total_orders": _count(*scope),
            "today_orders": _count(Order.created_at >= today, *scope),
            "total_revenue": float(_revenue(*scope)),
            "today_revenue": float(_revenue(Order.created_at >= today, *scope)),
            "pending_orders": counts["PENDING"],
            "preparing_orders": counts["PREPARING"],
            "delivered_orders": counts["DELIVERED"],
            "cancelled_orders": counts[CANCELLED],
            # messages are not tied to a branch
            "unread_messages": ContactMessage.query.filter_by(is_read=False).count(),
        },
        "status_counts": counts,
        "daily_trend": daily_trend(now, branch.id),
        "recent_orders": recent_orders(branch.id),
    }

def analytics(period_days: int = 30, now=None) -> dict:
    """Totals for the last `period_days` days plus the best-selling items."""
    now = now or utcnow()
    since = now - timedelta(days=period_days)
    in_period = (Order.created_at >= since, Order.status != CANCELLED)

    orders = _count(*in_period)
    revenue = _revenue(Order.created_at >= since)
    new_customers = (User.query
                     .filter(User.role == Role.CUSTOMER.value, User.created_at >= since)
                     .count())

    qty = func.sum(OrderItem.quantity)
    rows = (db.session.query(OrderItem.menu_item_id, OrderItem.name, qty, func.sum(OrderItem.line_total))
            .join(Order, Order.id == OrderItem.order_id)
            .filter(*in_period)
            .group_by(OrderItem.menu_item_id, OrderItem.name)
            .order_by(qty.desc())
            .limit(TOP_ITEMS_LIMIT)
            .all())

    return {
        "overview": {
            "period": period_days,
            "total_orders": orders,
            "total_revenue": float(revenue),
            "avg_order_value": float(round_money(revenue / orders)) if orders else 0.0,
            "new_customers": new_customers,
        },
        "top_items": [{
            "menu_item_id": item_id,
            "name": name,
            "quantity": int(quantity or 0),
            "revenue": float(round_money(D(total))),
        } for item_id, name, quantity, total in rows],
    }
