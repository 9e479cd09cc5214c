"""Authentication CLI commands.

- login: sign in with a personal access token or with username/password
- logout: forget the stored credential
- status: restore the stored session and show who is signed in
"""

import typer

from wanikani_client.auth import Authenticated, NeedsAdditionalSetup, NoSession
from wanikani_client.cli.runner import console, run
from wanikani_client.services import open_services
from wanikani_client.types import User

auth_app = typer.Typer(help="Sign in to and out of WaniKani")


def _print_user(user: User) -> None:
    console.print(
        f"Signed in as [bold]{user.username}[/bold] (level {user.level}, "
        f"{user.subscription.type} subscription)"
    )


@auth_app.command("login")
def login(
    token: str = typer.Option(
        None, "--token", "-t", envvar="WANIKANI_API_TOKEN", help="Personal access token"
    ),
    username: str = typer.Option(
        None, "--username", "-u", help="Sign in through the website instead of a token"
    ),
    create_token: bool = typer.Option(
        False,
        "--create-token",
        help="Create an access token without asking if none exists yet",
    ),
) -> None:
    """Sign in and store the credential."""
    if token is None and username is None:
        token = typer.prompt("Personal access token", hide_input=True)

    password = None
    if token is None:
        password = typer.prompt("Password", hide_input=True)

    async def _login() -> None:
        async with open_services() as services:
            auth = services.authenticator
            if token is not None:
                _print_user(await auth.login(token))
                return

            state = await auth.login_with_password(username, password)
            if isinstance(state, NeedsAdditionalSetup):
                label = services.settings.app_label
                if not create_token and not typer.confirm(
                    f"No access token labelled '{label}' exists. Create one?"
                ):
                    console.print("Signed in on the website, but no token was created.")
                    raise typer.Exit(1)
                state = await auth.create_access_token()

            if isinstance(state, Authenticated):
                _print_user(state.user)

    run(_login())


@auth_app.command("logout")
def logout() -> None:
    """Remove the stored credential."""

    async def _logout() -> None:
        async with open_services() as services:
            await services.authenticator.logout()
        console.print("Signed out")

    run(_logout())


@auth_app.command("status")
def status() -> None:
    """Show the signed-in user, if any."""

    async def _status() -> None:
        async with open_services() as services:
            state = await services.authenticator.restore_session()
        if isinstance(state, Authenticated):
            _print_user(state.user)
        elif isinstance(state, NoSession):
            console.print("Not signed in")
            raise typer.Exit(1)
        else:
            console.print(f"Session state: {type(state).__name__}")

    run(_status())
