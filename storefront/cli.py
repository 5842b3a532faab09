# storefront/cli.py
import click
from flask.cli import with_appcontext
from werkzeug.security import generate_password_hash

from .store import get_store
from .utils.decorators import ROLES


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--username", required=True)
@click.option("--password", required=True)
@click.option("--role", type=click.Choice(ROLES), default="super_admin", show_default=True)
@with_appcontext
def create_admin(email, username, password, role):
    store = get_store()
    email = email.strip().lower()
    if store.users.first(email=email):
        click.echo("Email already exists"); return
    if store.users.first(username=username):
        click.echo("Username already exists"); return
    u = store.users.insert({
        "email": email,
        "username": username,
        "password_hash": generate_password_hash(password),
        "role": role,
    })
    click.echo(f"{role} created: {u['user_id']} {u['email']}")


def register_cli(app):
    app.cli.add_command(create_admin)
