import click

from keystone_app import create_app, db
from keystone_app.auth import register_user
from keystone_app.schemas import RegisterPayload
from keystone_app.storage import DatabaseStorage, get_storage

app = create_app()


@app.cli.command("initdb")
@click.option("--demo-agent", default=None, help="Email of a demo agent account to create.")
@click.option("--password", default="keystone-demo", show_default=True)
def initdb(demo_agent, password):
    """Create the database tables and optionally a demo agent."""
    storage = get_storage()
    if isinstance(storage, DatabaseStorage):
        db.create_all()
    if demo_agent:
        if storage.get_user_by_email(demo_agent) is None:
            register_user(
                storage,
                RegisterPayload(
                    email=demo_agent,
                    password=password,
                    first_name="Demo",
                    last_name="Agent",
                    role="agent",
                ),
            )
            click.echo(f"Created demo agent {demo_agent}.")
    click.echo("Database initialized.")


if __name__ == "__main__":
    app.run(debug=True)
