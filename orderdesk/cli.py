# orderdesk/cli.py
import click
from flask.cli import with_appcontext
import pandas as pd
from decimal import Decimal
from werkzeug.security import generate_password_hash
from .extensions import db
from .model import User, Role, Category, MenuItem, Setting
from .menu.routes import slugify
from .setting.routes import DEFAULTS

@click.command("create-admin")
@with_appcontext
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name, password_hash=generate_password_hash(password), role=Role.ADMIN.value)
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")

@click.command("seed-settings")
@with_appcontext
def seed_settings():
    """Insert default delivery/currency settings without overwriting existing rows."""
    created = 0
    for key, value in DEFAULTS.items():
        if Setting.query.filter_by(key=key).first() is None:
            Setting.put(key, value)
            created += 1
    db.session.commit()
    click.echo(f"{created} settings created")

REQUIRED_COLUMNS = {"Name", "Price", "Category"}

@click.command("import-menu")
@with_appcontext
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_menu(path):
    """
    Import menu items from a .csv or .xlsx sheet.
    Columns: Name, Price, Category, [Description, Image, Available, Popular]
    Rows whose name already exists in the same category update the price.
    """
    df = pd.read_excel(path) if path.lower().endswith((".xlsx", ".xls")) else pd.read_csv(path)
    # Clean column names (remove extra spaces)
    df.columns = df.columns.str.strip()
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise click.ClickException(f"missing columns: {', '.join(sorted(missing))}")

    df = df.astype(object).where(pd.notnull(df), None)
    created = updated = 0
    categories = {c.name.lower(): c for c in Category.query.all()}

    for _, row in df.iterrows():
        cat_name = str(row["Category"]).strip()
        cat = categories.get(cat_name.lower())
        if cat is None:
            cat = Category(name=cat_name, slug=slugify(cat_name), sort_order=len(categories))
            db.session.add(cat)
            db.session.flush()
            categories[cat_name.lower()] = cat

        name = str(row["Name"]).strip()
        price = Decimal(str(row["Price"]))
        item = MenuItem.query.filter_by(name=name, category_id=cat.id).first()
        if item:
            item.price = price
            updated += 1
        else:
            db.session.add(MenuItem(
                name=name,
                slug=slugify(name),
                price=price,
                description=row.get("Description"),
                image=row.get("Image"),
                is_available=_truthy(row.get("Available"), True),
                is_popular=_truthy(row.get("Popular"), False),
                category_id=cat.id,
            ))
            created += 1

    db.session.commit()
    click.echo(f"{created} menu items created, {updated} updated from {path}")

def _truthy(v, default):
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "y"}

def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(seed_settings)
    app.cli.add_command(import_menu)
