from flask import Blueprint

bp = Blueprint("menu", __name__, url_prefix="/api/menu")
admin_bp = Blueprint("menu_admin", __name__, url_prefix="/api/admin")

from . import routes  # noqa: E402,F401
